import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from app.config import settings
from app.database.supabase_client import get_service_supabase
from app.modules.webhooks.service import ClerkSyncService, verify_clerk_event
from supabase import Client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_clerk_sync_service(supabase: Client = Depends(get_service_supabase)) -> ClerkSyncService:
    return ClerkSyncService(supabase)


@router.post("/clerk", response_class=PlainTextResponse)
async def clerk_webhook(
    request: Request,
    service: ClerkSyncService = Depends(get_clerk_sync_service)
):
    """Receive Clerk user lifecycle events"""
    payload = await request.body()
    logger.info("Webhook received, payload length: %d", len(payload))
    event = verify_clerk_event(settings.clerk_webhook_secret, payload, request.headers)
    service.handle(event)
    return PlainTextResponse("OK", status_code=200)
