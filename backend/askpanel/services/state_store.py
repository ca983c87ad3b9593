"""Durable conversation state with change broadcast.

Holds three independent keys (thread, status, lastSelection). Every write to
the thread or the status is re-broadcast so observers never need to poll.
Appends are serialized through a single lock so two concurrent appends cannot
lose each other's message.
"""

import asyncio
import logging
from typing import List, Optional

import databases

from askpanel.core.errors import StorageError
from askpanel.core.events import PanelEvent
from askpanel.db.queries import state as state_queries
from askpanel.schemas.panel import (
    GlobalState,
    LastSelection,
    Message,
    Status,
    StatusKind,
    now_ms,
)
from askpanel.services.event_bus import EventBus

logger = logging.getLogger(__name__)

THREAD_KEY = "thread"
STATUS_KEY = "status"
LAST_SELECTION_KEY = "lastSelection"


class StateStore:
    """Thread, status and last selection persisted in the StateEntry table."""

    def __init__(self, db: databases.Database, bus: EventBus):
        self.db = db
        self.bus = bus
        self._thread_lock = asyncio.Lock()

    async def _get(self, key: str):
        try:
            return await state_queries.get_value(self.db, key)
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def _set(self, key: str, value) -> None:
        try:
            await state_queries.set_value(self.db, key, value)
        except Exception as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    async def _delete(self, key: str) -> None:
        try:
            await state_queries.delete_value(self.db, key)
        except Exception as e:
            raise StorageError(f"Failed to clear {key}: {e}") from e

    # ── Thread ────────────────────────────────────────────────────────

    async def get_thread(self) -> List[Message]:
        raw = await self._get(THREAD_KEY)
        if not isinstance(raw, list):
            return []
        return [Message.model_validate(item) for item in raw]

    async def set_thread(self, thread: List[Message]) -> None:
        await self._set(THREAD_KEY, [m.model_dump(mode="json") for m in thread])
        self.bus.broadcast(PanelEvent.thread_updated(thread))

    async def append_message(self, message: Message) -> List[Message]:
        """Append one message to the end of the thread and return the new thread."""
        async with self._thread_lock:
            thread = await self.get_thread()
            thread.append(message)
            await self.set_thread(thread)
        return thread

    # ── Status ────────────────────────────────────────────────────────

    async def get_status(self) -> Status:
        raw = await self._get(STATUS_KEY)
        if not isinstance(raw, dict):
            return Status.neutral()
        return Status.model_validate(raw)

    async def set_status(self, text: str, kind: StatusKind = StatusKind.NEUTRAL) -> Status:
        status = Status(text=text or "", kind=kind, at=now_ms())
        await self._set(STATUS_KEY, status.model_dump(mode="json"))
        self.bus.broadcast(PanelEvent.status_updated(status))
        return status

    # ── Last selection ────────────────────────────────────────────────

    async def get_last_selection(self) -> Optional[LastSelection]:
        raw = await self._get(LAST_SELECTION_KEY)
        if not isinstance(raw, dict):
            return None
        return LastSelection.model_validate(raw)

    async def set_last_selection(self, text: str) -> LastSelection:
        selection = LastSelection(text=text, at=now_ms())
        await self._set(LAST_SELECTION_KEY, selection.model_dump(mode="json"))
        return selection

    # ── Whole-state operations ────────────────────────────────────────

    async def clear(self) -> None:
        """Reset thread and status. The last selection is kept."""
        async with self._thread_lock:
            await self._set(THREAD_KEY, [])
            await self._delete(STATUS_KEY)
        self.bus.broadcast(PanelEvent.status_updated(Status.neutral()))
        self.bus.broadcast(PanelEvent.thread_cleared())
        self.bus.broadcast(PanelEvent.thread_updated([]))

    async def get_global_state(self) -> GlobalState:
        """Full snapshot for observer boot. Falls back to empty defaults on failure."""
        try:
            return GlobalState(
                thread=await self.get_thread(),
                status=await self.get_status(),
                last_selection=await self.get_last_selection(),
            )
        except Exception:
            logger.exception("Failed to load global state; returning defaults")
            return GlobalState()
