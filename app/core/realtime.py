"""
Realtime change feeds as explicit event streams.

subscribe -> channel (asyncio.Queue) -> typed ChangeEvent -> consumer.
An EventStream is an async context manager: leaving the block releases the
subscription, so a consumer that goes away cannot leak a channel.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from app.database.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass
class ChangeEvent:
    table: str
    event_type: str
    record: Dict[str, Any] = field(default_factory=dict)


def record_from_payload(payload: Any) -> Dict[str, Any]:
    """Row carried by a postgres_changes payload, whichever envelope it arrives in"""
    if not isinstance(payload, dict):
        return {}
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    return data.get("record") or data.get("new") or {}


class RealtimeSource:
    """Something that can push row changes for a table filter"""

    async def subscribe(self, table: str, event: str, row_filter: Optional[str], callback: Callable[[ChangeEvent], None]) -> Any:
        raise NotImplementedError

    async def unsubscribe(self, handle: Any) -> None:
        raise NotImplementedError


class SupabaseRealtimeSource(RealtimeSource):
    """Supabase Realtime postgres_changes channels on the async client"""

    async def subscribe(self, table, event, row_filter, callback):
        client = await SupabaseClient.get_async_client()
        channel = client.channel(f"{table}:{row_filter or '*'}")

        def on_change(payload):
            callback(ChangeEvent(table=table, event_type=event, record=record_from_payload(payload)))

        channel.on_postgres_changes(event, callback=on_change, table=table, schema="public", filter=row_filter)
        await channel.subscribe()
        logger.debug("Subscribed to %s %s (%s)", table, event, row_filter)
        return channel

    async def unsubscribe(self, handle):
        client = await SupabaseClient.get_async_client()
        await client.remove_channel(handle)
        logger.debug("Removed realtime channel %s", getattr(handle, "topic", handle))


def get_realtime_source() -> RealtimeSource:
    return SupabaseRealtimeSource()


class EventStream:
    def __init__(self, source: RealtimeSource, table: str, event: str = "INSERT", row_filter: Optional[str] = None):
        self.source = source
        self.table = table
        self.event = event
        self.row_filter = row_filter
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle = None
        self._closed = False

    async def __aenter__(self) -> "EventStream":
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._handle = await self.source.subscribe(self.table, self.event, self.row_filter, self._on_change)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _on_change(self, event: ChangeEvent) -> None:
        # Realtime callbacks may fire outside the consumer's loop
        if self._closed or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        if self._queue is None:
            raise RuntimeError("EventStream used outside 'async with'")
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        handle, self._handle = self._handle, None
        if handle is not None:
            try:
                await self.source.unsubscribe(handle)
            except Exception as e:
                logger.warning("Failed to release %s subscription: %s", self.table, e)
        if self._queue is not None:
            self._queue.put_nowait(_CLOSED)
