# tests/test_views_realtime.py
"""View projections and the realtime dispatcher."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch
from society_vms.client import realtime
from society_vms.client.realtime import RealtimeDispatcher
from society_vms.client.views import render_admin, render_guard, render_resident, vehicle_display
from society_vms.schemas.change_event import ChangeEvent
from society_vms.schemas.resident import ResidentOut
from society_vms.schemas.stats import AdminStatsOut
from society_vms.schemas.visitor_request import VisitorRequestOut
from society_vms.utils.exceptions import TransportError


def request_out(**overrides):
    data = {
        "id": "r1", "guard_id": "guard-1", "flat_id": 33, "flat_code": "B203", "wing": "B",
        "visitor_name": "Jane Doe", "photo_url": "data:image/jpeg;base64,AA==",
        "purpose": "Delivery", "status": "pending", "created_at": datetime(2026, 3, 1, 10, 0),
    }
    data.update(overrides)
    return VisitorRequestOut(**data)


def make_ctx(flat_id=None, role=None):
    ctx = MagicMock()
    ctx.refresh = AsyncMock()
    ctx.actor = MagicMock(flat_id=flat_id) if flat_id is not None else None
    ctx.role = role or ("resident" if flat_id is not None else "guard")
    return ctx


class TestViews:
    @pytest.mark.parametrize("vehicle_type,vehicle_number,expected", [
        ("Car", "MH12AB1234", "Car - MH12AB1234"),
        (None, "MH12AB1234", "MH12AB1234"),
        ("Bike", None, "Bike"),
        (None, None, "N/A"),
        ("", "", "N/A"),
    ])
    def test_vehicle_display(self, vehicle_type, vehicle_number, expected):
        assert vehicle_display(vehicle_type, vehicle_number) == expected

    def test_guard_view(self):
        model = render_guard([request_out()], [request_out(id="r2", status="approved")])

        assert model.pending[0].vehicle == "N/A"
        assert model.pending[0].can_decide
        assert model.awaiting_entry[0].can_allow_entry
        assert model.awaiting_entry[0].status_label == "Approved"
        assert not model.empty
        assert render_guard([], []).empty

    def test_resident_view(self):
        resident = ResidentOut(id="res-1", phone="9876543210", email="o@example.com", flat_id=33, flat_code="B203")
        model = render_resident(resident, [request_out()], [request_out(id="r0", status="denied")])

        assert model.resident_info == "B203 | 9876543210"
        assert model.history[0].status_label == "Denied"
        assert not model.history[0].can_decide

    def test_admin_view(self):
        stats = AdminStatsOut(date="2026-03-01", todayVisitors=1, pendingApprovals=1)
        model = render_admin(stats, [request_out()])
        assert model.stats.todayVisitors == 1
        assert model.records[0].flat_code == "B203"


class TestRealtimeDispatcher:
    @pytest.mark.asyncio
    async def test_insert_for_own_flat_notifies(self):
        ctx = make_ctx(flat_id=33)
        await RealtimeDispatcher(ctx).handle(ChangeEvent(eventType="INSERT", record={"flat_id": 33}))

        ctx.refresh.assert_awaited_once()
        ctx.notify.assert_called_once_with("New visitor approval request", "info")

    @pytest.mark.asyncio
    async def test_insert_for_other_flat_only_refreshes(self):
        ctx = make_ctx(flat_id=12)
        await RealtimeDispatcher(ctx).handle(ChangeEvent(eventType="INSERT", record={"flat_id": 33}))

        ctx.refresh.assert_awaited_once()
        ctx.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_resident_in_admin_view_gets_no_insert_notification(self):
        ctx = make_ctx(flat_id=33, role="admin")
        await RealtimeDispatcher(ctx).handle(ChangeEvent(eventType="INSERT", record={"flat_id": 33}))

        ctx.refresh.assert_awaited_once()
        ctx.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_guard_gets_no_insert_notification(self):
        ctx = make_ctx()
        await RealtimeDispatcher(ctx).handle(ChangeEvent(eventType="INSERT", record={"flat_id": 33}))
        ctx.notify.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,message", [
        ("approved", "Visitor request approved"),
        ("denied", "Visitor request denied"),
    ])
    async def test_decision_notifies_any_view(self, status, message):
        ctx = make_ctx()
        await RealtimeDispatcher(ctx).handle(ChangeEvent(eventType="UPDATE", record={"status": status}))
        assert ctx.notify.call_args[0][0] == message

    @pytest.mark.asyncio
    async def test_completed_update_is_silent(self):
        ctx = make_ctx()
        await RealtimeDispatcher(ctx).handle(ChangeEvent(eventType="UPDATE", record={"status": "completed"}))
        ctx.refresh.assert_awaited_once()
        ctx.notify.assert_not_called()

    def test_full_channel_drops(self):
        dispatcher = RealtimeDispatcher(make_ctx(), maxsize=1)
        event = ChangeEvent(eventType="INSERT", record={})

        assert dispatcher.offer(event)
        assert not dispatcher.offer(event)
        assert dispatcher.dropped == 1

    @pytest.mark.asyncio
    async def test_subscribe_reconnects_with_backoff(self):
        connections = iter([TransportError("down"), [ChangeEvent(eventType="INSERT", record={"id": "r1"})]])

        def stream_changes():
            batch = next(connections)

            async def events():
                if isinstance(batch, Exception):
                    raise batch
                for event in batch:
                    yield event
            return events()

        ctx = make_ctx()
        ctx.gateway.stream_changes = stream_changes
        dispatcher = RealtimeDispatcher(ctx)
        sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])

        with patch.object(realtime.asyncio, "sleep", sleep):
            with pytest.raises(asyncio.CancelledError):
                await dispatcher.subscribe()

        # first retry after the failure, backoff reset once an event arrived
        assert [c.args[0] for c in sleep.await_args_list] == [3, 3]
        assert dispatcher.channel.qsize() == 1

    @pytest.mark.asyncio
    async def test_consumer_applies_events_in_order(self):
        ctx = make_ctx(flat_id=33)
        dispatcher = RealtimeDispatcher(ctx)
        dispatcher.offer(ChangeEvent(eventType="INSERT", record={"flat_id": 33}))
        dispatcher.offer(ChangeEvent(eventType="UPDATE", record={"status": "approved"}))

        consumer = asyncio.ensure_future(dispatcher.consume())
        await asyncio.wait_for(dispatcher.channel.join(), timeout=1)
        consumer.cancel()

        messages = [c.args[0] for c in ctx.notify.call_args_list]
        assert messages == ["New visitor approval request", "Visitor request approved"]
