"""Live feed of messages addressed to one user."""
import asyncio
import logging
from typing import AsyncIterator

from app.core.realtime import EventStream, RealtimeSource
from app.modules.conversations.models import MESSAGES_TABLE
from app.modules.messages.schemas import MessageEvent
from app.modules.messages.service import MessageService

logger = logging.getLogger(__name__)


class MessageStream:
    """INSERTs on messages where receiver_id = user, re-read from the store before delivery"""

    def __init__(self, source: RealtimeSource, service: MessageService, user_id: str):
        self.service = service
        self.user_id = user_id
        self._events = EventStream(source, MESSAGES_TABLE, "INSERT", f"receiver_id=eq.{user_id}")

    async def __aenter__(self) -> "MessageStream":
        await self._events.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._events.__aexit__(exc_type, exc, tb)

    async def __aiter__(self) -> AsyncIterator[MessageEvent]:
        async for change in self._events:
            message_id = change.record.get("id")
            if not message_id:
                continue
            try:
                row = await asyncio.to_thread(self.service.get_message, message_id)
            except Exception as e:
                logger.warning("Could not re-read message %s: %s", message_id, e)
                continue
            if row is None or row["receiver_id"] != self.user_id:
                continue
            message = (await asyncio.to_thread(self.service.with_senders, [row], self.user_id))[0]
            yield MessageEvent(conversation_id=row["conversation_id"], message=message)
