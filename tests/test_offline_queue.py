# tests/test_offline_queue.py
"""Unit tests for the local store and the offline submission queue."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from society_vms.client.local_store import OFFLINE_QUEUE_KEY, LocalStore
from society_vms.client.offline_queue import OfflineSubmissionQueue
from society_vms.utils.exceptions import TransportError, ValidationError


def payload(name):
    return {"visitor_name": name, "flat_code": "B203", "photo_url": "data:image/jpeg;base64,AA=="}


def created(request_id):
    record = MagicMock()
    record.id = request_id
    return record


class TestLocalStore:
    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "state.json"
        LocalStore(path).set("language", "mr")
        assert LocalStore(path).get("language") == "mr"

    def test_remove(self, tmp_path):
        path = tmp_path / "state.json"
        store = LocalStore(path)
        store.set("language", "mr")
        store.remove("language")
        assert json.loads(path.read_text()) == {}

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        assert LocalStore(path).get(OFFLINE_QUEUE_KEY) is None

    def test_no_temp_file_left_behind(self, tmp_path):
        LocalStore(tmp_path / "state.json").set("language", "en")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]


class TestOfflineQueue:
    def test_enqueue_persists_immediately(self, tmp_path):
        path = tmp_path / "state.json"
        queue = OfflineSubmissionQueue(LocalStore(path))
        queue.enqueue(payload("Jane Doe"))

        reloaded = OfflineSubmissionQueue(LocalStore(path))
        assert len(reloaded) == 1
        assert reloaded.items[0]["visitor_name"] == "Jane Doe"

    @pytest.mark.asyncio
    async def test_drain_in_order_and_empties(self, tmp_path):
        store = LocalStore(tmp_path / "state.json")
        queue = OfflineSubmissionQueue(store)
        queue.enqueue(payload("First"))
        queue.enqueue(payload("Second"))

        gateway = MagicMock()
        gateway.create_visitor_request = AsyncMock(side_effect=[created("r1"), created("r2")])

        persisted = await queue.drain(gateway)

        assert [r.id for r in persisted] == ["r1", "r2"]
        sent = [c.args[0]["visitor_name"] for c in gateway.create_visitor_request.call_args_list]
        assert sent == ["First", "Second"]
        assert len(queue) == 0
        assert store.get(OFFLINE_QUEUE_KEY) is None

    @pytest.mark.asyncio
    async def test_first_failure_stops_drain(self, tmp_path):
        path = tmp_path / "state.json"
        queue = OfflineSubmissionQueue(LocalStore(path))
        for name in ("First", "Second", "Third"):
            queue.enqueue(payload(name))

        gateway = MagicMock()
        gateway.create_visitor_request = AsyncMock(side_effect=[created("r1"), TransportError("down"), created("r3")])

        persisted = await queue.drain(gateway)

        assert len(persisted) == 1
        assert gateway.create_visitor_request.await_count == 2
        assert [i["visitor_name"] for i in queue.items] == ["Second", "Third"]
        assert len(OfflineSubmissionQueue(LocalStore(path))) == 2

    @pytest.mark.asyncio
    async def test_rejected_item_stays_at_front(self, tmp_path):
        queue = OfflineSubmissionQueue(LocalStore(tmp_path / "state.json"))
        queue.enqueue(payload("Bad flat"))

        gateway = MagicMock()
        gateway.create_visitor_request = AsyncMock(side_effect=ValidationError("Invalid flat code"))

        assert await queue.drain(gateway) == []
        assert len(queue) == 1

    @pytest.mark.asyncio
    async def test_empty_drain_makes_no_calls(self, tmp_path):
        queue = OfflineSubmissionQueue(LocalStore(tmp_path / "state.json"))
        gateway = MagicMock()
        gateway.create_visitor_request = AsyncMock()

        assert await queue.drain(gateway) == []
        gateway.create_visitor_request.assert_not_called()
