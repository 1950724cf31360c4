# src/services/event_broker.py

"""Best-effort broadcast of sync notifications to SSE subscribers."""

import asyncio
import json
import logging
from typing import Any

from src.config.settings import Settings

logger = logging.getLogger("drink_picker.events")


def format_sse(event: str, payload: Any) -> str:
    """Render one server-sent event frame."""
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


class EventBroker:
    """Fan out events to per-subscriber bounded queues.

    Publishing never awaits: a subscriber whose queue is full simply
    misses the message.
    """

    def __init__(self, queue_size: int = Settings.EVENT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[str]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[str]:
        """Register a new subscriber and return its queue."""
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.debug("Subscriber added (%d total)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[str]) -> None:
        """Forget a subscriber; unknown queues are ignored."""
        self._subscribers.discard(queue)
        logger.debug("Subscriber removed (%d total)", len(self._subscribers))

    def publish(self, event: str, payload: Any) -> int:
        """Queue *event* for every subscriber; returns deliveries made."""
        frame = format_sse(event, payload)
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(frame)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Dropped %s event for a slow subscriber", event)
        logger.info(
            "Published %s to %d/%d subscribers",
            event,
            delivered,
            len(self._subscribers),
        )
        return delivered
