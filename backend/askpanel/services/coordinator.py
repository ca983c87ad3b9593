"""Entry points that turn user input into thread messages and queued jobs."""

import logging

from askpanel.core.errors import PanelError, ValidationError
from askpanel.db.database import database
from askpanel.schemas.panel import Ack, GlobalState, JobKind, Message, Role
from askpanel.services.event_bus import event_bus
from askpanel.services.executor import JobExecutor
from askpanel.services.state_store import StateStore

logger = logging.getLogger(__name__)

IMAGE_DISPLAY_PREFIX = "Analyze this image:\n"


def image_display_text(url: str) -> str:
    return f"{IMAGE_DISPLAY_PREFIX}{url}"


class PanelCoordinator:
    """Serializes user requests into the global thread and the job queue."""

    def __init__(self, store: StateStore, executor: JobExecutor):
        self.store = store
        self.executor = executor

    async def get_global_state(self) -> GlobalState:
        return await self.store.get_global_state()

    async def _post(self, kind: JobKind, content: str) -> None:
        if kind == JobKind.IMAGE:
            await self.store.append_message(Message.create(Role.USER, image_display_text(content)))
            self.executor.enqueue(JobKind.IMAGE, {"url": content})
        else:
            await self.store.append_message(Message.create(Role.USER, content))
            self.executor.enqueue(JobKind.TEXT, {"text": content})

    async def submit(self, kind: JobKind, content: str) -> Ack:
        """
        Observer submission. Acknowledges once the user message is stored and
        the job queued; the answer arrives later as a THREAD_UPDATED event.
        """
        content = (content or "").strip()
        try:
            if not content:
                raise ValidationError("Empty url" if kind == JobKind.IMAGE else "Empty text")
            await self._post(kind, content)
        except PanelError as e:
            return Ack.failure(str(e))
        return Ack.success()

    async def capture_selection(self, text: str) -> bool:
        """Context-menu selection: remember it, then ask about it."""
        selected = (text or "").strip()
        if not selected:
            return False
        await self.store.set_last_selection(selected)
        await self._post(JobKind.TEXT, selected)
        return True

    async def capture_image(self, url: str) -> bool:
        """Context-menu image: ask the backend to analyze it."""
        image_url = (url or "").strip()
        if not image_url:
            logger.warning("Image capture without a source URL")
            return False
        await self._post(JobKind.IMAGE, image_url)
        return True

    async def capture(self, kind: JobKind, content: str) -> Ack:
        try:
            if kind == JobKind.IMAGE:
                accepted = await self.capture_image(content)
            else:
                accepted = await self.capture_selection(content)
        except PanelError as e:
            return Ack.failure(str(e))
        if not accepted:
            return Ack.failure("Nothing captured")
        return Ack.success()

    async def clear(self) -> Ack:
        """Clear thread and status; the last selection survives."""
        try:
            await self.store.clear()
        except PanelError as e:
            return Ack.failure(str(e))
        return Ack.success()


store = StateStore(database, event_bus)
executor = JobExecutor(store)

# Singleton instance
coordinator = PanelCoordinator(store, executor)
