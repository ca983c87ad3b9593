"""In-process observer that mirrors the global state.

Boots from one full snapshot, then applies broadcast events by wholesale
replacement until detached.
"""

import json
from typing import List, Optional, Union

from askpanel.core.events import EventType, PanelEvent
from askpanel.schemas.panel import (
    Ack,
    GlobalState,
    JobKind,
    LastSelection,
    Message,
    Status,
    StatusKind,
    now_ms,
)
from askpanel.services.coordinator import PanelCoordinator
from askpanel.services.event_bus import EventBus


def build_prompt(user_text: str, last_selection: Optional[LastSelection], include_selection: bool) -> str:
    """Prefix the question with the last captured selection when requested."""
    text = (user_text or "").strip()
    if not text or not include_selection:
        return text

    selected = (last_selection.text if last_selection else "").strip()
    if not selected:
        return text

    return f"Selected text:\n{selected}\n\nQuestion:\n{text}"


class PanelObserver:
    def __init__(self, coordinator: PanelCoordinator, bus: EventBus):
        self.coordinator = coordinator
        self.bus = bus
        self.thread: List[Message] = []
        self.status: Status = Status.neutral()
        self.last_selection: Optional[LastSelection] = None
        # Events received before the snapshot lands; None once booted
        self._backlog: Optional[List[PanelEvent]] = None

    async def attach(self) -> None:
        self._backlog = []
        await self.bus.subscribe(self, self.receive)
        self.boot(await self.coordinator.get_global_state())
        # Events are full replacements; replay them over the snapshot in order
        backlog, self._backlog = self._backlog, None
        for event in backlog:
            self.apply(event)

    async def detach(self) -> None:
        await self.bus.unsubscribe(self)
        self._backlog = None

    def boot(self, snapshot: GlobalState) -> None:
        self.thread = list(snapshot.thread)
        self.status = snapshot.status
        self.last_selection = snapshot.last_selection

    async def receive(self, message: str) -> None:
        event = PanelEvent.model_validate(json.loads(message))
        if self._backlog is not None:
            self._backlog.append(event)
        else:
            self.apply(event)

    def apply(self, event: Union[PanelEvent, dict]) -> None:
        if isinstance(event, dict):
            event = PanelEvent.model_validate(event)

        if event.type == EventType.THREAD_UPDATED and event.thread is not None:
            self.thread = list(event.thread)
        elif event.type == EventType.STATUS_UPDATED and event.status is not None:
            self.status = event.status
        elif event.type == EventType.THREAD_CLEARED:
            self.thread = []
            self.status = Status.neutral()

    def build_prompt(self, user_text: str, include_selection: bool = False) -> str:
        return build_prompt(user_text, self.last_selection, include_selection)

    def _checked(self, ack: Ack) -> Ack:
        if not ack.ok:
            self.status = Status(text=ack.error or "Request failed", kind=StatusKind.ERROR, at=now_ms())
        return ack

    async def submit_text(self, text: str, include_selection: bool = False) -> Ack:
        prompt = self.build_prompt(text, include_selection)
        return self._checked(await self.coordinator.submit(JobKind.TEXT, prompt))

    async def submit_image(self, url: str) -> Ack:
        return self._checked(await self.coordinator.submit(JobKind.IMAGE, url))

    async def clear(self) -> Ack:
        return self._checked(await self.coordinator.clear())
