from pydantic import BaseModel, EmailStr
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class ActionResult(BaseModel):
    """Result of a form action: either success or a human-readable error."""
    success: Optional[bool] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ActionResult":
        return cls(success=True)

    @classmethod
    def fail(cls, message: str) -> "ActionResult":
        return cls(error=message)


class ChatbaseIdentity(BaseModel):
    user_id: str
    user_hash: str
    user_email: Optional[str] = None
