"""In-process change feed for lead and task mutations"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from leadboard.utils.logger import logger


@dataclass
class ChangeEvent:
    """A row-level change published after a successful commit"""
    topic: str  # e.g. "lead.stage_changed", "task.created"
    tenant_id: Any
    payload: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)


class ChangeFeed:
    """
    Fan-out publisher.

    Each subscriber gets its own bounded queue. A full queue drops the
    oldest event so one slow consumer cannot block publishers; consumers
    that need exact state resync from the database anyway.
    """

    def __init__(self, max_queue_size: int = 256):
        self.max_queue_size = max_queue_size
        self._subscribers: list[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, topic: str, tenant_id: Any, **payload) -> ChangeEvent:
        event = ChangeEvent(topic=topic, tenant_id=tenant_id, payload=payload)
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(event)
        logger.debug(f"Published {topic} to {len(self._subscribers)} subscriber(s)")
        return event


change_feed = ChangeFeed()
