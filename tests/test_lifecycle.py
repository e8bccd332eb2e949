# tests/test_lifecycle.py
"""
VisitorRequestLifecycle submission paths: photo upload substitution, offline queueing,
backend failures that must not be mistaken for lost connectivity, admin listing limits.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import httpx
import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock, patch
from society_vms.client.context import AppContext
from society_vms.client.gateway import HttpGateway
from society_vms.client.lifecycle import VisitorForm, encode_photo
from society_vms.client.local_store import OFFLINE_QUEUE_KEY, LocalStore
from society_vms.models.visitor_request import VisitorRequest
from society_vms.utils.exceptions import ServerError

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"
CDN_URL = "https://cdn.example.com/visitors/1.jpg"


def jane_doe(**overrides):
    data = {"visitor_name": "Jane Doe", "flat_code": "B203", "photo": JPEG, "purpose": "Delivery"}
    data.update(overrides)
    return VisitorForm(**data)


def context_behind(handler, tmp_path) -> AppContext:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://vms/api/v1")
    return AppContext(gateway=HttpGateway(client=client), store=LocalStore(tmp_path / "guard.json"))


def crashing_backend(request):
    """Serves the flat directory and answers every submission with a 500."""
    if request.url.path == "/api/v1/flats":
        return httpx.Response(200, json=[{"id": 33, "wing": "B", "flat_number": 203, "flat_code": "B203"}])
    if request.method == "POST":
        return httpx.Response(500, json={"detail": "Internal server error"})
    return httpx.Response(200, json=[])


class TestPhotoUpload:
    @pytest.mark.asyncio
    async def test_uploaded_url_replaces_inline_photo(self, make_context, db):
        guard = make_context("guard")
        upload = AsyncMock(return_value=CDN_URL)

        with patch.object(guard.gateway, "upload_photo", new=upload):
            outcome = await guard.lifecycle.submit(jane_doe())

        upload.assert_awaited_once_with(JPEG)
        assert outcome.status == "sent"
        assert outcome.request.photo_url == CDN_URL
        assert db.query(VisitorRequest).one().photo_url == CDN_URL

    @pytest.mark.asyncio
    async def test_failed_upload_keeps_inline_photo(self, make_context, db):
        guard = make_context("guard")
        upload = AsyncMock(return_value=None)

        with patch.object(guard.gateway, "upload_photo", new=upload):
            outcome = await guard.lifecycle.submit(jane_doe())

        upload.assert_awaited_once()
        assert outcome.status == "sent"
        assert outcome.request.photo_url == encode_photo(JPEG)
        assert db.query(VisitorRequest).count() == 1

    @pytest.mark.asyncio
    async def test_data_url_photo_is_not_uploaded(self, make_context):
        guard = make_context("guard")
        upload = AsyncMock(return_value=CDN_URL)

        with patch.object(guard.gateway, "upload_photo", new=upload):
            outcome = await guard.lifecycle.submit(jane_doe(photo=encode_photo(JPEG)))

        upload.assert_not_awaited()
        assert outcome.request.photo_url == encode_photo(JPEG)

    @pytest.mark.asyncio
    async def test_offline_queue_keeps_inline_photo(self, make_context):
        guard = make_context("guard", online=False)
        upload = AsyncMock(return_value=CDN_URL)

        with patch.object(guard.gateway, "upload_photo", new=upload):
            outcome = await guard.lifecycle.submit(jane_doe())

        upload.assert_not_awaited()
        assert outcome.status == "queued"
        assert guard.store.get(OFFLINE_QUEUE_KEY)[0]["photo_url"] == encode_photo(JPEG)


class TestBackendFailures:
    @pytest.mark.asyncio
    async def test_server_error_is_reported_not_queued(self, tmp_path):
        guard = context_behind(crashing_backend, tmp_path)

        outcome = await guard.lifecycle.submit(jane_doe())

        assert outcome.status == "error"
        assert outcome.message == "Internal server error"
        assert guard.online
        assert len(guard.queue) == 0
        assert guard.notifications[-1].level == "error"

        again = await guard.lifecycle.submit(jane_doe(visitor_name="John Roe"))
        assert again.status == "error"
        assert len(guard.queue) == 0
        await guard.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides,message", [
        ({"vehicle_number": "MH12AB1234567890XYZW1"}, "Vehicle number must be at most 20 characters"),
        ({"vehicle_type": "Articulated lorry trailer"}, "Vehicle type must be at most 20 characters"),
        ({"visitor_phone": "98765432109876543"}, "Visitor phone must be at most 15 characters"),
        ({"visitor_name": "J" * 256}, "Visitor name must be at most 255 characters"),
    ])
    async def test_oversized_fields_rejected_before_sending(self, make_context, db, overrides, message):
        guard = make_context("guard")
        outcome = await guard.lifecycle.submit(jane_doe(**overrides))

        assert outcome.status == "validation"
        assert outcome.message == message
        assert db.query(VisitorRequest).count() == 0
        assert len(guard.queue) == 0

    @pytest.mark.asyncio
    async def test_oversized_field_not_queued_offline(self, make_context):
        guard = make_context("guard", online=False)
        outcome = await guard.lifecycle.submit(jane_doe(vehicle_number="X" * 21))

        assert outcome.status == "validation"
        assert len(guard.queue) == 0

    @pytest.mark.asyncio
    async def test_stats_zeros_on_server_error_use_utc_day(self, make_context):
        admin = make_context("admin")
        with patch.object(admin.gateway, "get_admin_stats", new=AsyncMock(side_effect=ServerError("boom"))):
            stats = await admin.lifecycle.stats_for()

        assert stats.date == str(datetime.utcnow().date())
        assert stats.todayVisitors == 0


class TestAdminListing:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("filters,limit", [
        ({}, 50),
        ({"wing": "B"}, 100),
        ({"day": date(2026, 3, 1)}, 100),
        ({"wing": "B", "day": date(2026, 3, 1)}, 100),
    ])
    async def test_limit_depends_on_filters(self, make_context, filters, limit):
        admin = make_context("admin")
        listing = AsyncMock(return_value=[])

        with patch.object(admin.gateway, "list_all_requests", new=listing):
            assert await admin.lifecycle.list_for_admin(**filters) == []

        assert listing.await_args.kwargs["limit"] == limit

    @pytest.mark.asyncio
    async def test_history_uses_twenty_newest(self, make_context):
        resident = make_context("resident")
        history = AsyncMock(return_value=[])

        with patch.object(resident.gateway, "list_history_for_flat", new=history):
            await resident.lifecycle.list_history_for_flat(33)

        history.assert_awaited_once_with(33, 20)
