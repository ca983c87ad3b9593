"""Conversation state models shared by the store, executor and observers."""

import secrets
import time
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Milliseconds since epoch."""
    return int(time.time() * 1000)


def make_id() -> str:
    """Time-based id with a random suffix; unique, not cryptographic."""
    return f"{now_ms()}-{secrets.token_hex(6)}"


class Role(str, Enum):
    USER = "user"
    BOT = "bot"


class StatusKind(str, Enum):
    NEUTRAL = ""
    OK = "ok"
    ERROR = "error"


class JobKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    text: str
    ts: int

    @classmethod
    def create(cls, role: Role, text: str) -> "Message":
        return cls(id=make_id(), role=role, text=text, ts=now_ms())


class Status(BaseModel):
    text: str = ""
    kind: StatusKind = StatusKind.NEUTRAL
    at: int = 0

    @classmethod
    def neutral(cls) -> "Status":
        return cls()


class LastSelection(BaseModel):
    text: str
    at: int


class Job(BaseModel):
    """One queued unit of work. Payload is {"text": ...} or {"url": ...}."""

    kind: JobKind
    payload: Dict[str, str]


class GlobalState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thread: List[Message] = Field(default_factory=list)
    status: Status = Field(default_factory=Status.neutral)
    last_selection: Optional[LastSelection] = Field(default=None, alias="lastSelection")


class SubmitRequest(BaseModel):
    kind: JobKind = JobKind.TEXT
    content: str = ""


class Ack(BaseModel):
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "Ack":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> "Ack":
        return cls(ok=False, error=error)
