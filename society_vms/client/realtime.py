"""
Realtime dispatcher — keeps the client in sync with the backend change feed.

One producer task holds the change stream open and pushes events into a bounded
channel (reconnecting with backoff when the stream drops); one consumer task
drains the channel and applies each event to the AppContext in arrival order.
The feed is at-most-once: events that arrive while the channel is full are dropped,
and the next full re-fetch of the active view covers them.
"""

import asyncio
from typing import Optional

from society_vms.client.identity import RESIDENT_ROLE
from society_vms.config import settings
from society_vms.schemas.change_event import ChangeEvent
from society_vms.services import state_machine as sm
from society_vms.services.change_feed import INSERT, UPDATE
from society_vms.utils.exceptions import TransportError
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)

_STATUS_NOTICES = {
    sm.APPROVED: ("Visitor request approved", "success"),
    sm.DENIED: ("Visitor request denied", "warning"),
}


class RealtimeDispatcher:
    def __init__(self, ctx, maxsize: Optional[int] = None):
        self.ctx = ctx
        self.channel: asyncio.Queue = asyncio.Queue(maxsize=maxsize or settings.CHANGE_FEED_QUEUE_SIZE)
        self.dropped = 0
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def offer(self, event: ChangeEvent) -> bool:
        try:
            self.channel.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Realtime channel full — dropped {event.eventType} event ({self.dropped} total)")
            return False

    async def handle(self, event: ChangeEvent):
        """Re-fetch the active view, then raise the notification this event calls for, if any."""
        await self.ctx.refresh()

        record = event.record
        if event.eventType == INSERT:
            actor = self.ctx.actor
            if self.ctx.role == RESIDENT_ROLE and actor is not None and actor.flat_id == record.get("flat_id"):
                self.ctx.notify("New visitor approval request", "info")
        elif event.eventType == UPDATE:
            notice = _STATUS_NOTICES.get(record.get("status"))
            if notice:
                self.ctx.notify(*notice)

    async def consume(self):
        while True:
            event = await self.channel.get()
            try:
                await self.handle(event)
            except Exception as e:
                logger.error(f"Realtime event handling error: {e}", exc_info=True)
            finally:
                self.channel.task_done()

    async def subscribe(self):
        backoff = settings.REALTIME_MIN_BACKOFF

        while True:
            logger.info("📡 Connecting to change feed...")
            try:
                async for event in self.ctx.gateway.stream_changes():
                    backoff = settings.REALTIME_MIN_BACKOFF
                    self.offer(event)
                logger.info("Change feed closed by server — reconnecting")
            except TransportError as e:
                logger.warning(f"❌ Change feed unavailable ({e.message}). Retry in {backoff}s")

            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, settings.REALTIME_MAX_BACKOFF)

    def start(self):
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self.consume(), name="realtime-consumer"),
            asyncio.create_task(self.subscribe(), name="realtime-subscriber"),
        ]
        logger.info("🚀 Realtime dispatcher started")

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("🛑 Realtime dispatcher stopped")
