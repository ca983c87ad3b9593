from enum import Enum
from pydantic import BaseModel
from typing import List, Optional

from askpanel.schemas.panel import Message, Status


class EventType(str, Enum):
    THREAD_UPDATED = "THREAD_UPDATED"
    STATUS_UPDATED = "STATUS_UPDATED"
    THREAD_CLEARED = "THREAD_CLEARED"


class PanelEvent(BaseModel):
    type: EventType
    thread: Optional[List[Message]] = None
    status: Optional[Status] = None

    @classmethod
    def thread_updated(cls, thread: List[Message]) -> "PanelEvent":
        return cls(type=EventType.THREAD_UPDATED, thread=list(thread))

    @classmethod
    def status_updated(cls, status: Status) -> "PanelEvent":
        return cls(type=EventType.STATUS_UPDATED, status=status)

    @classmethod
    def thread_cleared(cls) -> "PanelEvent":
        return cls(type=EventType.THREAD_CLEARED)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)
