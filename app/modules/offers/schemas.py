from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from datetime import datetime


class OfferCreate(BaseModel):
    title: str
    description: str
    price: float = Field(..., gt=0)
    time_estimate: str
    form_type: Literal["proposal", "commercial"] = "proposal"

    @model_validator(mode="after")
    def require_text_fields(self):
        for name in ("title", "description", "time_estimate"):
            value = getattr(self, name).strip()
            if not value:
                raise ValueError(f"{name} must not be blank")
            setattr(self, name, value)
        return self


class OfferResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    title: str
    description: str
    price: float
    time_estimate: str
    form_type: str
    status: str
    responded_at: Optional[datetime] = None
    project_submitted: bool = False
    project_submitted_at: Optional[datetime] = None
    project_submission_url: Optional[str] = None
    project_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OfferDecision(BaseModel):
    status: Literal["accepted", "refused"]


class ProjectFileResponse(BaseModel):
    id: str
    form_id: str
    file_name: str
    file_path: str
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    url: Optional[str] = None
    uploaded_at: Optional[datetime] = None


class DeliveryResponse(BaseModel):
    form: OfferResponse
    files: List[ProjectFileResponse] = []
