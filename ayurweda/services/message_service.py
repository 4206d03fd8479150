from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime
from typing import List, Tuple
import logging

from ..models.user import User
from ..models.message import Conversation, ConversationParticipant, Message, Notification
from ..schemas.message import ConversationCreate, MessageCreate, NotificationCreate

logger = logging.getLogger(__name__)

class MessageService:
    def __init__(self, db: Session):
        self.db = db

    # Conversations

    def list_conversations(self, user: User) -> List[dict]:
        conversations = self.db.query(Conversation).join(ConversationParticipant).filter(
            ConversationParticipant.user_id == user.id
        ).order_by(Conversation.updated_at.desc(), Conversation.id.desc()).all()

        return [self._conversation_fields(conversation, user) for conversation in conversations]

    def create_conversation(self, creator: User, data: ConversationCreate) -> dict:
        member_ids = set(data.participants)
        member_ids.add(creator.id)

        found = self.db.query(User.id).filter(User.id.in_(member_ids)).all()
        missing = member_ids - {row[0] for row in found}
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown participants: {sorted(missing)}"
            )

        conversation = Conversation(title=data.title, type=data.type, created_by=creator.id)
        for member_id in sorted(member_ids):
            conversation.participants.append(ConversationParticipant(user_id=member_id))

        self.db.add(conversation)
        self.db.commit()
        self.db.refresh(conversation)

        logger.info(f"Conversation {conversation.id} created by user {creator.id}")
        return self._conversation_fields(conversation, creator)

    def get_messages(self, user: User, conversation_id: int) -> List[Message]:
        """Messages in order; marks the ones from other participants as read."""
        conversation = self._get_for_participant(user, conversation_id)

        messages = list(conversation.messages)
        self.db.query(Message).filter(
            Message.conversation_id == conversation.id,
            Message.sender_id != user.id,
            Message.is_read == False
        ).update({"is_read": True}, synchronize_session=False)
        self.db.commit()

        return messages

    def send_message(self, user: User, conversation_id: int, data: MessageCreate) -> Message:
        conversation = self._get_for_participant(user, conversation_id)

        message = Message(
            conversation_id=conversation.id,
            sender_id=user.id,
            content=data.content,
            message_type=data.message_type,
        )
        self.db.add(message)
        conversation.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(message)
        return message

    def _get_for_participant(self, user: User, conversation_id: int) -> Conversation:
        conversation = self.db.query(Conversation).filter(Conversation.id == conversation_id).first()
        if not conversation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found"
            )

        is_member = any(p.user_id == user.id for p in conversation.participants)
        if not is_member:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied to this conversation"
            )
        return conversation

    def _conversation_fields(self, conversation: Conversation, user: User) -> dict:
        last = conversation.messages[-1] if conversation.messages else None
        unread = sum(
            1 for m in conversation.messages
            if not m.is_read and m.sender_id != user.id
        )
        return {
            "id": conversation.id,
            "title": conversation.title,
            "type": conversation.type,
            "created_by": conversation.created_by,
            "participants": [p.user for p in conversation.participants],
            "unread_count": unread,
            "last_message": last.content if last else None,
            "last_message_at": last.created_at if last else None,
            "created_at": conversation.created_at,
            "updated_at": conversation.updated_at,
        }

    # Notifications

    def list_notifications(
        self,
        user: User,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Notification], int, int]:
        query = self.db.query(Notification).filter(Notification.user_id == user.id)
        if unread_only:
            query = query.filter(Notification.is_read == False)

        total = query.count()
        notifications = query.order_by(Notification.created_at.desc(), Notification.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()

        unread = self.db.query(Notification).filter(
            Notification.user_id == user.id,
            Notification.is_read == False
        ).count()
        return notifications, total, unread

    def mark_read(self, user: User, notification_id: int) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user.id
        ).first()
        if not notification:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Notification not found"
            )

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, user: User) -> int:
        updated = self.db.query(Notification).filter(
            Notification.user_id == user.id,
            Notification.is_read == False
        ).update({"is_read": True, "read_at": datetime.utcnow()}, synchronize_session=False)
        self.db.commit()
        return updated

    def create_notifications(self, sender: User, data: NotificationCreate) -> List[Notification]:
        recipient_ids = list(dict.fromkeys(data.user_ids))

        found = self.db.query(User.id).filter(User.id.in_(recipient_ids)).all()
        missing = set(recipient_ids) - {row[0] for row in found}
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown recipients: {sorted(missing)}"
            )

        notifications = [
            Notification(
                user_id=recipient_id,
                sender_id=sender.id,
                title=data.title,
                message=data.message,
                type=data.type,
                priority=data.priority,
            )
            for recipient_id in recipient_ids
        ]
        self.db.add_all(notifications)
        self.db.commit()
        for notification in notifications:
            self.db.refresh(notification)

        logger.info(f"User {sender.id} sent {len(notifications)} notifications")
        return notifications
