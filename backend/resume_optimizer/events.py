import asyncio
import inspect
import json
import logging
from typing import Any, AsyncGenerator, Callable, List, Optional

logger = logging.getLogger(__name__)

JOB_CREATED = "job:created"
JOB_UPDATED = "job:updated"
JOB_DELETED = "job:deleted"

Listener = Callable[[str, Any], Any]


class JobEventBus:
    """Fire-and-forget fan-out of job changes to listeners and SSE subscribers.

    A failing or missing listener never affects the caller.
    """

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._listeners: List[Listener] = []
        self._queues: List["asyncio.Queue[str]"] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def publish(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Job event listener failed for {event}")
        if self._queues:
            message = f"event: {event}\ndata: {json.dumps(payload, default=str)}\n\n"
            for q in list(self._queues):
                try:
                    q.put_nowait(message)
                except asyncio.QueueFull:
                    logger.warning(f"Event subscriber queue full, dropping {event}")

    async def stream(self, queue: Optional["asyncio.Queue[str]"] = None) -> AsyncGenerator[bytes, None]:
        q = queue if queue is not None else asyncio.Queue(maxsize=self.max_queue_size)
        self._queues.append(q)
        try:
            while True:
                item = await q.get()
                yield item.encode("utf-8")
        except asyncio.CancelledError:
            return
        finally:
            if q in self._queues:
                self._queues.remove(q)


JOB_BUS = JobEventBus()
