"""
Offline submission queue.

Payloads created while disconnected are appended in order and written to the
local store immediately. drain() replays them front-to-back once connectivity is
back: each success removes its item (and rewrites the store), the first failure
stops the drain and leaves that item and everything behind it for the next attempt.

Delivery is at-least-once: a crash after the backend accepted an item but before
the store was rewritten replays that item on the next drain.
"""

import asyncio

from society_vms.client.local_store import OFFLINE_QUEUE_KEY
from society_vms.utils.exceptions import VisitorManagementError
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)


class OfflineSubmissionQueue:
    def __init__(self, store):
        self._store = store
        self._items: list[dict] = list(store.get(OFFLINE_QUEUE_KEY) or [])
        self._drain_lock = asyncio.Lock()
        if self._items:
            logger.info(f"Offline queue restored with {len(self._items)} pending submissions")

    def __len__(self):
        return len(self._items)

    @property
    def items(self) -> list[dict]:
        return [dict(item) for item in self._items]

    def enqueue(self, payload: dict):
        self._items.append(dict(payload))
        self._persist()
        logger.info(f"Queued offline submission for {payload.get('flat_code')} ({len(self._items)} waiting)")

    async def drain(self, gateway) -> list:
        """Returns the records persisted by this drain, in queue order."""
        persisted = []
        async with self._drain_lock:
            if self._items:
                logger.info(f"Processing offline queue: {len(self._items)} items")
            while self._items:
                item = self._items[0]
                try:
                    created = await gateway.create_visitor_request(item)
                except VisitorManagementError as e:
                    logger.error(f"Offline item for {item.get('flat_code')} not persisted "
                                 f"({e.kind}: {e.message}) — {len(self._items)} left in queue")
                    break
                self._items.pop(0)
                self._persist()
                persisted.append(created)
                logger.info(f"Offline item processed: request={created.id}")
        return persisted

    def _persist(self):
        if self._items:
            self._store.set(OFFLINE_QUEUE_KEY, self._items)
        else:
            self._store.remove(OFFLINE_QUEUE_KEY)
