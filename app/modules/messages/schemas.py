from pydantic import BaseModel, field_validator
from typing import Optional, Literal
from datetime import datetime


class MessageCreate(BaseModel):
    receiver_id: str
    content: str = ""
    attachment_url: Optional[str] = None
    attachment_type: Optional[Literal["image", "file"]] = None

    @field_validator("content")
    @classmethod
    def strip_content(cls, value: str) -> str:
        return value.strip()


class SenderSummary(BaseModel):
    full_name: str
    avatar_url: Optional[str] = None


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool = False
    message_type: Optional[str] = "text"
    form_id: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_type: Optional[str] = None
    created_at: Optional[datetime] = None
    sender: Optional[SenderSummary] = None

    class Config:
        from_attributes = True


class AttachmentUpload(BaseModel):
    path: str
    type: Literal["image", "file"]


class AttachmentView(BaseModel):
    """What a client needs to render an attachment, including a failed resolution"""
    status: Literal["ready", "failed"]
    kind: Literal["image", "file"]
    path: str
    url: Optional[str] = None
    file_name: Optional[str] = None
    label: str = "File"
    icon: str = "file"
    error: Optional[str] = None


class MarkReadResult(BaseModel):
    updated: int


class UnreadCount(BaseModel):
    unread: int


class MessageEvent(BaseModel):
    """Pushed to a connected client when a message addressed to them is stored"""
    type: Literal["message.created"] = "message.created"
    conversation_id: str
    message: MessageResponse
