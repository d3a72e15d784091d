from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from app.database.supabase_client import get_service_supabase
from app.modules.offers.schemas import OfferCreate, OfferResponse, OfferDecision, ProjectFileResponse, DeliveryResponse
from app.modules.offers.service import OfferService
from app.core.dependencies import get_current_account
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(tags=["offers"])


def get_offer_service(supabase: Client = Depends(get_service_supabase)) -> OfferService:
    return OfferService(supabase)


@router.post("/conversations/{conversation_id}/offers", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
async def create_offer(
    conversation_id: str,
    body: OfferCreate,
    account: Dict = Depends(get_current_account),
    service: OfferService = Depends(get_offer_service)
):
    """Send a proposal or commercial form to the other participant"""
    return service.create_offer(conversation_id, account["id"], body)


@router.post("/offers/{form_id}/respond", response_model=OfferResponse)
async def respond_to_offer(
    form_id: str,
    body: OfferDecision,
    account: Dict = Depends(get_current_account),
    service: OfferService = Depends(get_offer_service)
):
    return service.respond(form_id, account["id"], body.status)


@router.post("/conversations/{conversation_id}/delivery", response_model=DeliveryResponse)
async def submit_delivery(
    conversation_id: str,
    files: List[UploadFile] = File(default=[]),
    notes: Optional[str] = Form(None),
    url: Optional[str] = Form(None),
    account: Dict = Depends(get_current_account),
    service: OfferService = Depends(get_offer_service)
):
    """Deliver the project for the caller's accepted form"""
    uploads = []
    for upload in files:
        content = await upload.read()
        uploads.append((upload.filename or "file", content, upload.content_type or "application/octet-stream"))
    return service.submit_delivery(conversation_id, account["id"], uploads, notes, url)


@router.get("/offers/{form_id}/files", response_model=List[ProjectFileResponse])
async def list_project_files(
    form_id: str,
    account: Dict = Depends(get_current_account),
    service: OfferService = Depends(get_offer_service)
):
    """Delivered files with short-lived download links"""
    return service.list_files(form_id, account["id"])
