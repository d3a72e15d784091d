from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from app.database.supabase_client import get_service_supabase
from app.modules.freelancers.documents import DocumentService
from app.modules.freelancers.portfolio import PortfolioService
from app.modules.freelancers.schemas import (
    FreelancerProfileUpsert, OnboardingRequest, FreelancerProfileResponse, CascadeDeleteResult,
    CategoryResponse, FreelancerCard, DocumentEntry, DocumentLink, PortfolioImage
)
from app.modules.freelancers.service import FreelancerService
from app.core.dependencies import get_current_account
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/freelancers", tags=["freelancers"])
categories_router = APIRouter(prefix="/categories", tags=["categories"])


def get_freelancer_service(supabase: Client = Depends(get_service_supabase)) -> FreelancerService:
    return FreelancerService(supabase)


def get_document_service(supabase: Client = Depends(get_service_supabase)) -> DocumentService:
    return DocumentService(supabase)


def get_portfolio_service(supabase: Client = Depends(get_service_supabase)) -> PortfolioService:
    return PortfolioService(supabase)


@router.get("/me", response_model=FreelancerProfileResponse)
async def get_my_profile(
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service)
):
    return service.get_profile(account["id"], include_private=True)


@router.put("/me", response_model=FreelancerProfileResponse)
async def upsert_my_profile(
    body: FreelancerProfileUpsert,
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service)
):
    """Create or update the caller's freelancer profile"""
    service.upsert_profile(account, body)
    return service.get_profile(account["id"], include_private=True)


@router.post("/me/onboarding", response_model=FreelancerProfileResponse)
async def complete_onboarding(
    body: OnboardingRequest,
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service)
):
    """Profile plus languages, categories, skills, education, certificates and payment info"""
    service.complete_onboarding(account, body)
    return service.get_profile(account["id"], include_private=True)


@router.delete("/me", response_model=CascadeDeleteResult)
async def delete_my_profile(
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service)
):
    """Delete the caller's profile and every row that hangs off it"""
    return service.delete_profile(account)


@router.get("/me/documents", response_model=List[DocumentEntry])
async def list_documents(
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service),
    documents: DocumentService = Depends(get_document_service)
):
    return documents.list_documents(service.require_profile_row(account["id"]))


@router.post("/me/documents", response_model=DocumentEntry, status_code=status.HTTP_201_CREATED)
async def upload_document(
    document_type: str = Form(...),
    file: UploadFile = File(...),
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service),
    documents: DocumentService = Depends(get_document_service)
):
    profile = service.require_profile_row(account["id"])
    content = await file.read()
    return documents.upload(
        account["id"], profile, document_type, content,
        file.filename or "document", file.content_type or "application/octet-stream"
    )


@router.get("/me/documents/{document_id}/url", response_model=DocumentLink)
async def get_document_url(
    document_id: str,
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service),
    documents: DocumentService = Depends(get_document_service)
):
    """Time-boxed link to a private document"""
    return documents.link(service.require_profile_row(account["id"]), document_id)


@router.delete("/me/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service),
    documents: DocumentService = Depends(get_document_service)
):
    documents.delete(service.require_profile_row(account["id"]), document_id)
    return None


@router.post("/me/portfolio", response_model=List[PortfolioImage], status_code=status.HTTP_201_CREATED)
async def add_portfolio_image(
    file: UploadFile = File(...),
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service),
    portfolio: PortfolioService = Depends(get_portfolio_service)
):
    profile = service.require_profile_row(account["id"])
    content = await file.read()
    return portfolio.add_image(
        account["id"], profile, content,
        file.filename or "image", file.content_type or "application/octet-stream"
    )


@router.delete("/me/portfolio", response_model=List[PortfolioImage])
async def remove_portfolio_image(
    path: str,
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service),
    portfolio: PortfolioService = Depends(get_portfolio_service)
):
    return portfolio.remove_image(service.require_profile_row(account["id"]), path)


@router.get("/{user_id}/portfolio", response_model=List[PortfolioImage])
async def get_portfolio(
    user_id: str,
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service),
    portfolio: PortfolioService = Depends(get_portfolio_service)
):
    return portfolio.images(service.require_profile_row(user_id))


@router.get("/{user_id}", response_model=FreelancerProfileResponse)
async def get_profile(
    user_id: str,
    account: Dict = Depends(get_current_account),
    service: FreelancerService = Depends(get_freelancer_service)
):
    """Public profile; the owner also sees documents and payment info"""
    return service.get_profile(user_id, include_private=account["id"] == user_id)


@categories_router.get("", response_model=List[CategoryResponse])
async def list_categories(service: FreelancerService = Depends(get_freelancer_service)):
    return service.list_categories()


@categories_router.get("/{name}/freelancers", response_model=List[FreelancerCard])
async def list_category_freelancers(
    name: str,
    service: FreelancerService = Depends(get_freelancer_service)
):
    """Freelancers tagged with a category"""
    return service.freelancers_by_category(name)
