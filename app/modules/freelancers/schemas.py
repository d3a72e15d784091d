from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class FreelancerProfileUpsert(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    occupation: Optional[str] = None
    custom_occupation: Optional[str] = None
    profile_picture_url: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)


class LanguageEntry(BaseModel):
    language: str
    proficiency_level: Optional[str] = None


class SkillEntry(BaseModel):
    skill: str
    level: Optional[str] = None


class EducationEntry(BaseModel):
    country: Optional[str] = None
    university: Optional[str] = None
    title: Optional[str] = None
    major: Optional[str] = None
    year: Optional[int] = None


class CertificateEntry(BaseModel):
    name: str
    issuer: Optional[str] = None
    year: Optional[int] = None


class PaymentInfoEntry(BaseModel):
    payment_type: str
    account_number: str
    account_holder_name: str


class CategoryEntry(BaseModel):
    id: Optional[str] = None
    category_id: str
    name: Optional[str] = None


class DocumentEntry(BaseModel):
    id: str
    document_type: str
    document_url: str


class OnboardingRequest(BaseModel):
    profile: FreelancerProfileUpsert
    languages: List[LanguageEntry] = []
    categories: List[str] = []  # category names
    skills: List[SkillEntry] = []
    education: Optional[EducationEntry] = None
    certificates: List[CertificateEntry] = []
    payment_info: Optional[PaymentInfoEntry] = None


class FreelancerProfileResponse(BaseModel):
    id: str
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    occupation: Optional[str] = None
    custom_occupation: Optional[str] = None
    profile_picture_url: Optional[str] = None
    price: Optional[float] = None
    portfolio_images: List[str] = []
    onboarding_completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    languages: List[LanguageEntry] = []
    categories: List[CategoryEntry] = []
    skills: List[SkillEntry] = []
    education: List[EducationEntry] = []
    certificates: List[CertificateEntry] = []
    # Owner-only collections
    documents: Optional[List[DocumentEntry]] = None
    payment_info: Optional[List[PaymentInfoEntry]] = None

    class Config:
        from_attributes = True


class CascadeDeleteResult(BaseModel):
    operation_id: Optional[str] = None
    profile_id: str
    deleted_tables: List[str] = []
    failed_tables: List[str] = []
    profile_deleted: bool = False


class CategoryResponse(BaseModel):
    id: str
    name: str


class FreelancerCard(BaseModel):
    user_id: str
    display_name: str
    occupation: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None


class DocumentLink(BaseModel):
    id: str
    document_type: str
    url: str
    expires_in: int


class PortfolioImage(BaseModel):
    path: str
    url: str
