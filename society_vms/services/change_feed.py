"""
In-process change feed for the visitor_requests table.

Every committed insert/update is published to all connected subscribers as a
ChangeEvent. Each subscriber owns a bounded asyncio.Queue; when a slow client's
queue is full the event is dropped for that client only (at-most-once delivery).
Clients that reconnect resume from live events; nothing is replayed.
"""

import asyncio
from typing import Optional

from society_vms.config import settings
from society_vms.schemas.change_event import ChangeEvent
from society_vms.schemas.visitor_request import VisitorRequestOut
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"


class ChangeFeed:
    def __init__(self, queue_size: Optional[int] = None):
        self._queue_size = queue_size or settings.CHANGE_FEED_QUEUE_SIZE
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.info(f"Change feed subscriber connected ({len(self._subscribers)} total)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self._subscribers.discard(queue)
        logger.info(f"Change feed subscriber disconnected ({len(self._subscribers)} left)")

    def publish(self, event_type: str, record: dict) -> ChangeEvent:
        event = ChangeEvent(eventType=event_type, record=record)
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Change feed subscriber queue full — dropped {event_type} {record.get('id')}")
        return event

    def publish_request(self, event_type: str, request) -> ChangeEvent:
        record = VisitorRequestOut.model_validate(request).model_dump(mode="json")
        return self.publish(event_type, record)


change_feed = ChangeFeed()
