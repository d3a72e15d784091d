from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ConversationCreate(BaseModel):
    other_user_id: str


class ConversationRef(BaseModel):
    id: str


class Participant(BaseModel):
    id: str
    full_name: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    is_freelancer: bool = False


class LastMessage(BaseModel):
    id: Optional[str] = None
    content: str
    sender_id: str
    is_read: bool = False
    message_type: Optional[str] = "text"
    created_at: Optional[datetime] = None


class ConversationSummary(BaseModel):
    id: str
    participant: Participant
    last_message: Optional[LastMessage] = None
    unread_count: int = 0
    created_at: Optional[datetime] = None
