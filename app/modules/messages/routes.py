import asyncio
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, WebSocket, WebSocketDisconnect, status
from app.core.dependencies import get_current_account, get_auth_service, get_user_service
from app.core.realtime import RealtimeSource, get_realtime_source
from app.database.supabase_client import get_service_supabase
from app.modules.auth.service import AuthService
from app.modules.messages.attachments import AttachmentService
from app.modules.messages.schemas import (
    MessageCreate, MessageResponse, AttachmentUpload, AttachmentView, MarkReadResult, UnreadCount
)
from app.modules.messages.service import MessageService
from app.modules.messages.stream import MessageStream
from app.modules.users.service import UserService
from supabase import Client
from typing import List, Dict, Optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])
conversation_router = APIRouter(prefix="/conversations", tags=["messages"])


def get_message_service(supabase: Client = Depends(get_service_supabase)) -> MessageService:
    return MessageService(supabase)


def get_attachment_service(supabase: Client = Depends(get_service_supabase)) -> AttachmentService:
    return AttachmentService(supabase)


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    body: MessageCreate,
    account: Dict = Depends(get_current_account),
    service: MessageService = Depends(get_message_service)
):
    """Send a message, starting the conversation if needed"""
    service.conversations.users.require_user(body.receiver_id)
    return service.send_message(
        account["id"], body.receiver_id, body.content, body.attachment_url, body.attachment_type
    )


@router.post("/attachments", response_model=AttachmentUpload, status_code=201)
async def upload_attachment(
    file: UploadFile = File(...),
    account: Dict = Depends(get_current_account),
    service: AttachmentService = Depends(get_attachment_service)
):
    """Upload a file to reference from a message"""
    content = await file.read()
    return service.upload(account["id"], content, file.filename or "file", file.content_type)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    account: Dict = Depends(get_current_account),
    service: MessageService = Depends(get_message_service)
):
    return UnreadCount(unread=service.unread_count(account["id"]))


@router.post("/read", response_model=MarkReadResult)
async def mark_all_read(
    conversation_id: Optional[str] = None,
    account: Dict = Depends(get_current_account),
    service: MessageService = Depends(get_message_service)
):
    """Mark every message addressed to the caller as read, optionally in one conversation"""
    if conversation_id:
        service.conversations.require_conversation(conversation_id, account["id"])
    return MarkReadResult(updated=service.mark_all_read(account["id"], conversation_id))


@router.get("/{message_id}/attachment", response_model=AttachmentView)
async def get_attachment(
    message_id: str,
    account: Dict = Depends(get_current_account),
    service: MessageService = Depends(get_message_service),
    attachments: AttachmentService = Depends(get_attachment_service)
):
    """Resolve a message attachment to a time-boxed URL"""
    message = service.require_message(message_id, account["id"])
    return attachments.resolve(message)


@conversation_router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: str,
    account: Dict = Depends(get_current_account),
    service: MessageService = Depends(get_message_service)
):
    """Conversation history, oldest first"""
    return service.list_messages(conversation_id, account["id"])


@router.websocket("/ws")
async def message_feed(
    websocket: WebSocket,
    token: str = Query(...),
    auth_service: AuthService = Depends(get_auth_service),
    user_service: UserService = Depends(get_user_service),
    service: MessageService = Depends(get_message_service),
    source: RealtimeSource = Depends(get_realtime_source)
):
    """Push messages addressed to the caller while the socket is open"""
    try:
        identity = auth_service.get_current_user(token)
        account = user_service.get_by_subject(identity["id"])
    except HTTPException:
        account = None
    if account is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with MessageStream(source, service, account["id"]) as stream:
        await websocket.accept()
        logger.info("Message feed opened for %s", account["id"])

        async def pump():
            async for event in stream:
                await websocket.send_json(event.model_dump(mode="json"))

        pump_task = asyncio.create_task(pump())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info("Message feed closed for %s", account["id"])
        finally:
            pump_task.cancel()
            try:
                await pump_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Message feed for %s ended with error: %s", account["id"], e)
