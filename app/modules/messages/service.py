import logging
from typing import List, Optional, Dict, Any

from fastapi import HTTPException
from supabase import Client

from app.modules.conversations.models import MESSAGES_TABLE
from app.modules.conversations.service import ConversationService
from app.modules.messages.models import MESSAGE_TYPE_TEXT, ATTACHMENT_IMAGE
from app.modules.messages.schemas import MessageResponse, SenderSummary

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.conversations = ConversationService(supabase)

    def send_message(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        attachment_url: Optional[str] = None,
        attachment_type: Optional[str] = None,
        message_type: str = MESSAGE_TYPE_TEXT,
        form_id: Optional[str] = None
    ) -> MessageResponse:
        """Resolve or create the pair's conversation, then store an unread message"""
        if attachment_url and (
            not attachment_url.startswith(f"{sender_id}/") or ".." in attachment_url.split("/")
        ):
            raise HTTPException(status_code=400, detail="Attachment must be one of your own uploads")

        content = (content or "").strip()
        if not content:
            if not attachment_url:
                raise HTTPException(status_code=400, detail="Message content is required")
            content = "Sent an image" if attachment_type == ATTACHMENT_IMAGE else "Sent a file"

        conversation_id = self.conversations.start_conversation(sender_id, receiver_id)
        row = {
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "content": content,
            "is_read": False,
            "message_type": message_type,
            "attachment_url": attachment_url,
            "attachment_type": attachment_type,
        }
        if form_id:
            row["form_id"] = form_id
        try:
            result = self.supabase.table(MESSAGES_TABLE).insert(row).execute()
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            raise HTTPException(status_code=500, detail="Failed to send message")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to send message")
        return MessageResponse(**result.data[0])

    def get_message(self, message_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(MESSAGES_TABLE)\
            .select("*")\
            .eq("id", message_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def require_message(self, message_id: str, user_id: str) -> Dict[str, Any]:
        message = self.get_message(message_id)
        if message is None:
            raise HTTPException(status_code=404, detail="Message not found")
        if user_id not in (message["sender_id"], message["receiver_id"]):
            raise HTTPException(status_code=403, detail="You are not a participant in this conversation")
        return message

    def with_senders(self, rows: List[Dict[str, Any]], viewer_id: str) -> List[MessageResponse]:
        sender_ids = list({row["sender_id"] for row in rows})
        senders: Dict[str, SenderSummary] = {}
        if sender_ids:
            users = self.supabase.table("users").select("*").in_("id", sender_ids).execute()
            for person in self.conversations.users.to_public_users(users.data or []):
                senders[person.id] = SenderSummary(full_name=person.full_name, avatar_url=person.avatar_url)
        fallback_you = SenderSummary(full_name="You")
        fallback_unknown = SenderSummary(full_name="Unknown")
        return [
            MessageResponse(
                **row,
                sender=senders.get(row["sender_id"]) or (fallback_you if row["sender_id"] == viewer_id else fallback_unknown)
            )
            for row in rows
        ]

    def list_messages(self, conversation_id: str, user_id: str) -> List[MessageResponse]:
        """Conversation history, oldest first; what the caller received is now read"""
        self.conversations.require_conversation(conversation_id, user_id)
        try:
            result = self.supabase.table(MESSAGES_TABLE)\
                .select("*")\
                .eq("conversation_id", conversation_id)\
                .order("created_at")\
                .execute()
            rows = result.data or []
            messages = self.with_senders(rows, user_id)
        except Exception as e:
            logger.error(f"Error fetching messages: {e}")
            raise HTTPException(status_code=500, detail="Failed to load messages")

        if any(row["receiver_id"] == user_id and not row.get("is_read") for row in rows):
            try:
                self.mark_all_read(user_id, conversation_id)
            except HTTPException:
                # The history was served; read state catches up on the next fetch
                logger.warning("Could not mark conversation %s read for %s", conversation_id, user_id)
        return messages

    def mark_all_read(self, receiver_id: str, conversation_id: Optional[str] = None) -> int:
        """Flip unread -> read for every message addressed to receiver_id"""
        try:
            query = self.supabase.table(MESSAGES_TABLE)\
                .update({"is_read": True})\
                .eq("receiver_id", receiver_id)\
                .eq("is_read", False)
            if conversation_id:
                query = query.eq("conversation_id", conversation_id)
            result = query.execute()
            return len(result.data or [])
        except Exception as e:
            logger.error(f"Error marking messages read: {e}")
            raise HTTPException(status_code=500, detail="Failed to mark messages as read")

    def unread_count(self, receiver_id: str) -> int:
        try:
            result = self.supabase.table(MESSAGES_TABLE)\
                .select("id", count="exact")\
                .eq("receiver_id", receiver_id)\
                .eq("is_read", False)\
                .execute()
            return result.count if result.count is not None else len(result.data or [])
        except Exception as e:
            logger.error(f"Error counting unread messages: {e}")
            raise HTTPException(status_code=500, detail="Failed to count unread messages")
