"""Shared fixtures: a throwaway SQLite state store and a scriptable answering backend."""

import asyncio
from typing import Dict, List, Optional

import databases
import pytest
import pytest_asyncio

from askpanel.db.database import init_db
from askpanel.services.answer_client import AnswerClient
from askpanel.services.coordinator import PanelCoordinator
from askpanel.services.event_bus import EventBus
from askpanel.services.executor import JobExecutor
from askpanel.services.state_store import StateStore


class FakeAnswerClient(AnswerClient):
    """Answering backend double that records calls and tracks overlap."""

    def __init__(self, answers: Optional[Dict[str, str]] = None, default: str = "X"):
        self.answers = answers or {}
        self.default = default
        self.calls: List[tuple] = []
        self.active = 0
        self.max_active = 0
        self.gate: Optional[asyncio.Event] = None
        self.errors: Dict[str, Exception] = {}
        self.hang = False

    async def _answer(self, kind: str, value: str) -> str:
        self.calls.append((kind, value))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.hang:
                await asyncio.Event().wait()
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0.005)
            if value in self.errors:
                raise self.errors[value]
            return self.answers.get(value, self.default)
        finally:
            self.active -= 1

    async def answer_text(self, text: str) -> str:
        return await self._answer("text", text)

    async def answer_image(self, url: str) -> str:
        return await self._answer("image", url)


@pytest_asyncio.fixture
async def db(tmp_path):
    database = databases.Database(f"sqlite:///{tmp_path / 'state.db'}")
    await database.connect()
    await init_db(database)
    yield database
    await database.disconnect()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(db, bus):
    return StateStore(db, bus)


@pytest.fixture
def fake_client():
    return FakeAnswerClient()


@pytest_asyncio.fixture
async def executor(store, fake_client):
    job_executor = JobExecutor(store, client_factory=lambda: fake_client, timeout=2.0)
    yield job_executor
    await job_executor.stop()


@pytest.fixture
def coordinator(store, executor):
    return PanelCoordinator(store, executor)
