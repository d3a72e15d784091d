from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.modules.conversations.schemas import ConversationCreate, ConversationRef, ConversationSummary
from app.modules.conversations.service import ConversationService
from app.core.dependencies import get_current_account
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/conversations", tags=["conversations"])


def get_conversation_service(supabase: Client = Depends(get_service_supabase)) -> ConversationService:
    return ConversationService(supabase)


@router.post("", response_model=ConversationRef)
async def start_conversation(
    body: ConversationCreate,
    account: Dict = Depends(get_current_account),
    service: ConversationService = Depends(get_conversation_service)
):
    """Get or create the conversation with another user"""
    service.users.require_user(body.other_user_id)
    return ConversationRef(id=service.start_conversation(account["id"], body.other_user_id))


@router.get("", response_model=List[ConversationSummary])
async def list_conversations(
    account: Dict = Depends(get_current_account),
    service: ConversationService = Depends(get_conversation_service)
):
    """List the caller's conversations, most recent activity first"""
    return service.list_conversations(account["id"])
