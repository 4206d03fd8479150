from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .auth import ContactResponse
from .common import PageMeta

class ConversationCreate(BaseModel):
    title: str = Field(..., max_length=255)
    participants: List[int] = Field(..., min_length=1)
    type: str = Field("private", pattern="^(private|group)$")

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()

class MessageCreate(BaseModel):
    content: str
    message_type: str = Field("text", max_length=20)

    @field_validator("content")
    @classmethod
    def content_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content is required")
        return v.strip()

class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    sender_id: int
    sender_name: Optional[str] = None
    content: str
    message_type: str
    is_read: bool
    created_at: Optional[datetime] = None

class ConversationResponse(BaseModel):
    id: int
    title: str
    type: str
    created_by: Optional[int] = None
    participants: List[ContactResponse] = []
    unread_count: int = 0
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class NotificationCreate(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: str = Field("info", pattern="^(info|success|warning|error)$")
    priority: str = Field("normal", pattern="^(low|normal|high|urgent)$")

class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    sender_id: Optional[int] = None
    sender_name: Optional[str] = None
    title: str
    message: str
    type: str
    priority: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class NotificationList(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
    pagination: PageMeta
