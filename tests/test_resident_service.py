# tests/test_resident_service.py
"""Unit tests for resident upsert-by-phone."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from society_vms.models.resident import Resident
from society_vms.services.resident_service import authenticate_resident, get_resident
from society_vms.utils.exceptions import ValidationError


class TestResidentUpsert:
    @pytest.mark.asyncio
    async def test_same_phone_keeps_one_identity(self, db):
        first = await authenticate_resident(db, "9876543210", "owner@example.com", "B203")
        second = await authenticate_resident(db, "9876543210", "new@example.com", "c101")

        assert first.id == second.id
        assert second.email == "new@example.com"
        assert second.flat_code == "C101"
        assert db.query(Resident).count() == 1

    @pytest.mark.asyncio
    async def test_email_owned_by_other_phone_rejected(self, db):
        await authenticate_resident(db, "9876543210", "owner@example.com", "B203")
        with pytest.raises(ValidationError):
            await authenticate_resident(db, "9123456789", "owner@example.com", "B204")
        assert db.query(Resident).count() == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phone,email,flat_code", [
        ("98765", "owner@example.com", "B203"),
        ("98765432ab", "owner@example.com", "B203"),
        ("9876543210", "not-an-email", "B203"),
        ("9876543210", "owner@example.com", "F101"),
    ])
    async def test_invalid_input(self, db, phone, email, flat_code):
        with pytest.raises(ValidationError):
            await authenticate_resident(db, phone, email, flat_code)

    @pytest.mark.asyncio
    async def test_inactive_resident_not_returned(self, db):
        resident = await authenticate_resident(db, "9876543210", "owner@example.com", "B203")
        assert get_resident(db, resident.id) is not None

        resident.is_active = False
        db.commit()
        assert get_resident(db, resident.id) is None
