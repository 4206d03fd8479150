from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_user, get_staff_user
from ...services.message_service import MessageService
from ...schemas.common import MessageResponse, page_meta
from ...schemas.message import (
    ConversationCreate, ConversationResponse, MessageCreate, ChatMessageResponse,
    NotificationCreate, NotificationResponse, NotificationList
)
from ...models.user import User

router = APIRouter(prefix="/messages", tags=["Messages"])

# Conversations

@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Conversations you take part in, most recently active first."""
    return MessageService(db).list_conversations(current_user)

@router.post("/conversations", response_model=ConversationResponse)
async def create_conversation(
    conversation_data: ConversationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return MessageService(db).create_conversation(current_user, conversation_data)

@router.get("/conversations/{conversation_id}/messages", response_model=List[ChatMessageResponse])
async def get_messages(
    conversation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return MessageService(db).get_messages(current_user, conversation_id)

@router.post("/conversations/{conversation_id}/messages", response_model=ChatMessageResponse)
async def send_message(
    conversation_id: int,
    message_data: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return MessageService(db).send_message(current_user, conversation_id, message_data)

# Notifications

@router.get("/notifications", response_model=NotificationList)
async def list_notifications(
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notifications, total, unread = MessageService(db).list_notifications(
        current_user, unread_only, page, limit
    )
    return {
        "notifications": notifications,
        "unread_count": unread,
        "pagination": page_meta(page, limit, total),
    }

@router.patch("/notifications/read-all", response_model=MessageResponse)
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    updated = MessageService(db).mark_all_read(current_user)
    return {"message": f"{updated} notifications marked as read"}

@router.patch("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return MessageService(db).mark_read(current_user, notification_id)

@router.post("/notifications", response_model=List[NotificationResponse])
async def send_notifications(
    notification_data: NotificationCreate,
    db: Session = Depends(get_db),
    sender: User = Depends(get_staff_user)
):
    """Admins and doctors can notify one or more users."""
    return MessageService(db).create_notifications(sender, notification_data)
