"""Single-flight job execution.

Jobs are appended to a FIFO and drained by one worker task, so at most one
answering-backend call is outstanding at a time. enqueue() never waits for
execution; every job ends with either an answer or an error message in the
thread and a matching status, and a failing job never stops the queue.

The queue lives in memory only: jobs still pending at shutdown are dropped.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

import askpanel.core.config as config_module
from askpanel.core.errors import describe_error
from askpanel.schemas.panel import Job, JobKind, Message, Role, StatusKind
from askpanel.services.answer_client import AnswerClient, get_answer_client
from askpanel.services.state_store import StateStore

logger = logging.getLogger(__name__)

NO_ANSWER = "No answer."
STATUS_SENDING = "Sending…"
STATUS_ANALYZING = "Analyzing image…"
STATUS_DONE = "Done."


class ExecutorState(str, Enum):
    IDLE = "idle"
    EXECUTING = "executing"


class JobExecutor:
    """Owns the job queue and the in-flight state; exposes only enqueue/pump."""

    def __init__(
        self,
        store: StateStore,
        client_factory: Callable[[], AnswerClient] = get_answer_client,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.client_factory = client_factory
        self._timeout = timeout
        self._queue: "asyncio.Queue[Job]" = asyncio.Queue()
        self._state = ExecutorState.IDLE
        self._worker: Optional[asyncio.Task] = None

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return self._timeout
        return config_module.settings.answer_timeout_seconds

    @property
    def state(self) -> ExecutorState:
        return self._state

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, kind: JobKind, payload: dict) -> Job:
        """Append a job to the tail of the queue and trigger the pump."""
        job = Job(kind=kind, payload=payload)
        self._queue.put_nowait(job)
        self.pump()
        return job

    def pump(self) -> None:
        """Start the worker if it is not running. No-op while a worker is draining."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run())

    async def join(self) -> None:
        """Wait until every enqueued job has completed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Cancel the worker. Jobs still queued are discarded."""
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        self._state = ExecutorState.IDLE

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            self._state = ExecutorState.EXECUTING
            try:
                await self._execute(job)
            finally:
                self._state = ExecutorState.IDLE
                self._queue.task_done()

    async def _call_backend(self, job: Job) -> str:
        client = self.client_factory()
        if job.kind == JobKind.IMAGE:
            return await client.answer_image(job.payload["url"])
        return await client.answer_text(job.payload["text"])

    async def _execute(self, job: Job) -> None:
        logger.info("Executing %s job (%d queued behind it)", job.kind.value, self._queue.qsize())
        try:
            await self.store.set_status(
                STATUS_ANALYZING if job.kind == JobKind.IMAGE else STATUS_SENDING,
                StatusKind.NEUTRAL,
            )
            answer = await asyncio.wait_for(self._call_backend(job), timeout=self.timeout)
            await self.store.append_message(Message.create(Role.BOT, answer or NO_ANSWER))
            await self.store.set_status(STATUS_DONE, StatusKind.OK)
        except Exception as e:
            message = describe_error(e, self.timeout)
            logger.warning("%s job failed: %s", job.kind.value, message)
            await self._record_failure(message)

    async def _record_failure(self, message: str) -> None:
        try:
            await self.store.append_message(Message.create(Role.BOT, f"Error: {message}"))
            await self.store.set_status(message, StatusKind.ERROR)
        except Exception:
            logger.exception("Failed to record job error")
