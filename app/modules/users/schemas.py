from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime


class UserResponse(BaseModel):
    id: str
    clerk_id: Optional[str] = None
    email: Optional[str] = None
    is_freelancer: bool = False
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AvatarResponse(BaseModel):
    avatar_path: str
    avatar_url: Optional[str] = None


class PublicUser(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: str
    avatar_url: Optional[str] = None
    is_freelancer: bool = False
    freelancer_profile: Optional[Dict[str, Any]] = None
