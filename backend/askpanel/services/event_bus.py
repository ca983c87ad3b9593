from typing import Awaitable, Callable, Dict, Hashable
from fastapi import WebSocket
import asyncio
import logging

from askpanel.core.events import PanelEvent

logger = logging.getLogger(__name__)

SendFn = Callable[[str], Awaitable[None]]


class Subscriber:
    """One connected observer: a FIFO of serialized events and the task draining it."""

    def __init__(self, send: SendFn):
        self.send = send
        self.queue: "asyncio.Queue[str]" = asyncio.Queue()
        self.task: asyncio.Task | None = None


class EventBus:
    def __init__(self):
        self.connections: Dict[Hashable, Subscriber] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, key: Hashable, send: SendFn) -> Subscriber:
        subscriber = Subscriber(send)
        subscriber.task = asyncio.create_task(self._deliver(key, subscriber))
        async with self._lock:
            self.connections[key] = subscriber
        return subscriber

    async def unsubscribe(self, key: Hashable, expected: Subscriber | None = None):
        async with self._lock:
            if expected is not None and self.connections.get(key) is not expected:
                return
            subscriber = self.connections.pop(key, None)
        if subscriber is None:
            return
        # Release anyone waiting in drain() on events that will never be sent
        while not subscriber.queue.empty():
            subscriber.queue.get_nowait()
            subscriber.queue.task_done()
        if subscriber.task and subscriber.task is not asyncio.current_task():
            subscriber.task.cancel()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        await self.subscribe(websocket, websocket.send_text)

    async def disconnect(self, websocket: WebSocket):
        await self.unsubscribe(websocket)

    def broadcast(self, event: PanelEvent):
        """Queue event for every connected subscriber. Never blocks, never raises."""
        message = event.to_json()
        for subscriber in list(self.connections.values()):
            subscriber.queue.put_nowait(message)

    async def drain(self):
        """Wait until every subscriber has been handed all queued events."""
        for subscriber in list(self.connections.values()):
            if subscriber.task and not subscriber.task.done():
                await subscriber.queue.join()

    async def close(self):
        for key in list(self.connections):
            await self.unsubscribe(key)

    async def _deliver(self, key: Hashable, subscriber: Subscriber):
        while True:
            message = await subscriber.queue.get()
            try:
                await subscriber.send(message)
            except Exception:
                logger.debug("Dropping subscriber %r after failed send", key, exc_info=True)
                await self.unsubscribe(key, subscriber)
                return
            finally:
                subscriber.queue.task_done()


# Singleton instance
event_bus = EventBus()
