import logging
from typing import List, Optional, Dict, Any

from fastapi import HTTPException
from postgrest.exceptions import APIError
from supabase import Client

from app.core.dependencies import require_participant
from app.modules.conversations.models import (
    CONVERSATIONS_TABLE, MESSAGES_TABLE, UNIQUE_VIOLATION, canonical_pair
)
from app.modules.conversations.schemas import ConversationSummary, Participant, LastMessage
from app.modules.users.service import UserService

logger = logging.getLogger(__name__)


def _activity(summary: ConversationSummary) -> float:
    when = summary.last_message.created_at if summary.last_message else None
    when = when or summary.created_at
    return when.timestamp() if when else 0.0


class ConversationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.users = UserService(supabase)

    def get_conversation(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(CONVERSATIONS_TABLE)\
            .select("*")\
            .eq("id", conversation_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def require_conversation(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        """Conversation row, provided the caller is one of its two members"""
        try:
            conversation = self.get_conversation(conversation_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        require_participant(conversation, user_id)
        return conversation

    def find_by_pair(self, user1_id: str, user2_id: str) -> Optional[str]:
        result = self.supabase.table(CONVERSATIONS_TABLE)\
            .select("id")\
            .eq("user1_id", user1_id)\
            .eq("user2_id", user2_id)\
            .limit(1)\
            .execute()
        return result.data[0]["id"] if result.data else None

    def start_conversation(self, current_user_id: str, other_user_id: str) -> str:
        """Id of the single conversation for this unordered pair, creating it if needed.

        The table's unique (user1_id, user2_id) constraint decides concurrent
        creations: the losing insert gets a unique violation and returns the
        winner's row instead.
        """
        if current_user_id == other_user_id:
            raise HTTPException(status_code=400, detail="Cannot start a conversation with yourself")
        user1_id, user2_id = canonical_pair(current_user_id, other_user_id)
        try:
            existing = self.find_by_pair(user1_id, user2_id)
            if existing:
                return existing

            try:
                result = self.supabase.table(CONVERSATIONS_TABLE).insert({
                    "user1_id": user1_id,
                    "user2_id": user2_id
                }).execute()
            except APIError as e:
                if e.code != UNIQUE_VIOLATION:
                    raise
                logger.info("Conversation %s/%s created concurrently, reusing it", user1_id, user2_id)
                winner = self.find_by_pair(user1_id, user2_id)
                if winner is None:
                    raise
                return winner

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create conversation")
            logger.info("Started conversation %s", result.data[0]["id"])
            return result.data[0]["id"]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error starting conversation: {e}")
            raise HTTPException(status_code=500, detail="Failed to start conversation")

    def list_conversations(self, user_id: str) -> List[ConversationSummary]:
        """Caller's conversations with counterpart, last message and unread count"""
        try:
            conv_result = self.supabase.table(CONVERSATIONS_TABLE)\
                .select("*")\
                .or_(f"user1_id.eq.{user_id},user2_id.eq.{user_id}")\
                .order("created_at", desc=True)\
                .execute()
            conversations = conv_result.data or []
            if not conversations:
                return []

            msg_result = self.supabase.table(MESSAGES_TABLE)\
                .select("id, conversation_id, content, created_at, sender_id, receiver_id, is_read, message_type")\
                .in_("conversation_id", [c["id"] for c in conversations])\
                .order("created_at", desc=True)\
                .execute()
            last_messages: Dict[str, Dict[str, Any]] = {}
            unread: Dict[str, int] = {}
            for msg in msg_result.data or []:
                conv_id = msg["conversation_id"]
                last_messages.setdefault(conv_id, msg)
                if msg["receiver_id"] == user_id and not msg.get("is_read"):
                    unread[conv_id] = unread.get(conv_id, 0) + 1

            participant_ids = [
                c["user2_id"] if c["user1_id"] == user_id else c["user1_id"]
                for c in conversations
            ]
            users_result = self.supabase.table("users")\
                .select("*")\
                .in_("id", list(set(participant_ids)))\
                .execute()
            participants = {u.id: u for u in self.users.to_public_users(users_result.data or [])}

            summaries = []
            for conv, participant_id in zip(conversations, participant_ids):
                person = participants.get(participant_id)
                last = last_messages.get(conv["id"])
                summaries.append(ConversationSummary(
                    id=conv["id"],
                    participant=Participant(
                        id=participant_id,
                        full_name=person.full_name if person else "Unknown User",
                        email=person.email if person else None,
                        avatar_url=person.avatar_url if person else None,
                        is_freelancer=person.is_freelancer if person else False
                    ),
                    last_message=LastMessage(**last) if last else None,
                    unread_count=unread.get(conv["id"], 0),
                    created_at=conv.get("created_at")
                ))
            summaries.sort(key=_activity, reverse=True)
            return summaries
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching conversations: {e}")
            raise HTTPException(status_code=500, detail="Failed to load conversations")
