"""
Visitor request lifecycle engine (client side).

Drives a request through submit → approve|deny → allow entry on behalf of the
current actor in the AppContext. Actions never raise to the caller: every
gateway failure becomes an Outcome plus a notification, followed by a re-fetch
of the active view so the screen shows what the store actually holds.

Submission:
  - validate name / photo / flat code (ValidationError → nothing is persisted)
  - offline: queue the payload with the inline photo and report "queued"
  - online: try the photo upload and swap in its URL, keep the inline photo if the
    upload fails, then persist. Losing the connection at this point hands the payload
    to the offline queue instead of dropping it. A backend that answers with an
    error (validation, 5xx) is reported and nothing is queued.
"""

import base64
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from society_vms.schemas.stats import AdminStatsOut
from society_vms.schemas.visitor_request import VisitorRequestOut
from society_vms.services import state_machine as sm
from society_vms.utils.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ServerError,
    TransportError,
    ValidationError,
    VisitorManagementError,
)
from society_vms.utils.validators import (
    check_visitor_field_lengths,
    normalize_flat_code,
    purpose_or_default,
    require_visitor_name,
)
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)

SENT = "sent"
QUEUED = "queued"
OK = "ok"
NOT_FOUND = "not_found"
INVALID = "invalid"
REJECTED = "validation"
ERROR = "error"


@dataclass
class Outcome:
    status: str
    message: str
    request: Optional[VisitorRequestOut] = None

    @property
    def ok(self) -> bool:
        return self.status in (SENT, QUEUED, OK)


@dataclass
class VisitorForm:
    visitor_name: str = ""
    flat_code: str = ""
    photo: Union[bytes, str, None] = None    # raw JPEG bytes or a data: URL
    vehicle_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    purpose: Optional[str] = None
    visitor_phone: Optional[str] = None


def encode_photo(photo: Union[bytes, str], content_type: str = "image/jpeg") -> str:
    if isinstance(photo, bytes):
        return f"data:{content_type};base64,{base64.b64encode(photo).decode('ascii')}"
    return photo


class VisitorRequestLifecycle:
    def __init__(self, ctx):
        self.ctx = ctx

    @property
    def gateway(self):
        return self.ctx.gateway

    # ── submit ───────────────────────────────────────────────────────────────
    def build_payload(self, form: VisitorForm, photo: Union[bytes, str]) -> dict:
        return check_visitor_field_lengths({
            "visitor_name": require_visitor_name(form.visitor_name),
            "flat_code": normalize_flat_code(form.flat_code),
            "photo_url": encode_photo(photo),
            "vehicle_type": form.vehicle_type or None,
            "vehicle_number": form.vehicle_number or None,
            "purpose": purpose_or_default(form.purpose),
            "visitor_phone": form.visitor_phone or None,
            "guard_id": self.ctx.guard_id,
        })

    async def submit(self, form: VisitorForm) -> Outcome:
        photo = form.photo or self.ctx.current_photo
        try:
            if not photo:
                raise ValidationError("Please take a visitor photo")
            payload = self.build_payload(form, photo)
            await self.ctx.directory.resolve(payload["flat_code"])
        except ValidationError as e:
            self.ctx.notify(e.message, "error")
            return Outcome(REJECTED, e.message)

        if not self.ctx.online:
            return self._queue(payload)

        if isinstance(photo, bytes):
            url = await self.gateway.upload_photo(photo)
            if url:
                payload["photo_url"] = url

        try:
            created = await self.gateway.create_visitor_request(payload)
        except TransportError as e:
            logger.warning(f"Submit failed in transit ({e.message}) — queueing for replay")
            self.ctx.online = False
            return self._queue(payload)
        except VisitorManagementError as e:
            self.ctx.notify(e.message, "error")
            return Outcome(REJECTED if isinstance(e, ValidationError) else ERROR, e.message)

        self.ctx.clear_form()
        self.ctx.notify("Request sent successfully!", "success")
        await self.ctx.refresh()
        return Outcome(SENT, "Request sent successfully!", created)

    def _queue(self, payload: dict) -> Outcome:
        self.ctx.queue.enqueue(payload)
        self.ctx.clear_form()
        message = "No connection. Request queued and will be sent when back online"
        self.ctx.notify(message, "warning")
        return Outcome(QUEUED, message)

    # ── transitions ──────────────────────────────────────────────────────────
    async def approve(self, request_id: str) -> Outcome:
        return await self._decide(request_id, sm.APPROVED)

    async def deny(self, request_id: str) -> Outcome:
        return await self._decide(request_id, sm.DENIED)

    async def _decide(self, request_id: str, status: str) -> Outcome:
        actor = self.ctx.actor
        if actor is None:
            message = "Log in as a resident to approve or deny visitors"
            self.ctx.notify(message, "error")
            return Outcome(REJECTED, message)

        verb = "approving" if status == sm.APPROVED else "denying"
        try:
            updated = await self.gateway.update_request_status(request_id, status, actor.id)
        except VisitorManagementError as e:
            return await self._action_failed(e, f"Error {verb} request")

        message = "Request approved successfully" if status == sm.APPROVED else "Request denied"
        self.ctx.notify(message, "success" if status == sm.APPROVED else "warning")
        await self.ctx.refresh()
        return Outcome(OK, message, updated)

    async def allow_entry(self, request_id: str) -> Outcome:
        try:
            updated = await self.gateway.mark_entry(request_id)
        except VisitorManagementError as e:
            return await self._action_failed(e, "Error allowing entry")

        self.ctx.notify("Entry allowed", "success")
        await self.ctx.refresh()
        return Outcome(OK, "Entry allowed", updated)

    async def _action_failed(self, error: VisitorManagementError, fallback: str) -> Outcome:
        if isinstance(error, NotFoundError):
            status, message = NOT_FOUND, "This request no longer exists"
        elif isinstance(error, InvalidTransitionError):
            status, message = INVALID, f"Request can no longer be updated: {error.message}"
        elif isinstance(error, ValidationError):
            status, message = REJECTED, error.message
        else:
            status, message = ERROR, fallback
        logger.warning(f"{fallback}: {error.kind} — {error.message}")
        self.ctx.notify(message, "error")
        await self.ctx.refresh()
        return Outcome(status, message)

    # ── query surface ────────────────────────────────────────────────────────
    async def list_pending(self) -> list[VisitorRequestOut]:
        return await self.gateway.list_pending_requests()

    async def list_awaiting_entry(self) -> list[VisitorRequestOut]:
        return await self.gateway.list_awaiting_entry()

    async def list_pending_for_flat(self, flat_id: int) -> list[VisitorRequestOut]:
        return await self.gateway.list_pending_for_flat(flat_id)

    async def list_history_for_flat(self, flat_id: int) -> list[VisitorRequestOut]:
        return await self.gateway.list_history_for_flat(flat_id, self.ctx.settings.HISTORY_LIMIT)

    async def list_for_admin(self, wing: Optional[str] = None, day: Optional[date] = None) -> list[VisitorRequestOut]:
        """50 newest without filters, 100 newest matching a wing/date search."""
        settings = self.ctx.settings
        limit = settings.ADMIN_SEARCH_LIMIT if (wing or day) else settings.ADMIN_LIST_LIMIT
        return await self.gateway.list_all_requests(wing=wing, day=day, limit=limit)

    async def stats_for(self, day: Optional[date] = None) -> AdminStatsOut:
        """Counters for `day` (backend's today when omitted); all zeros when the store is unreachable."""
        try:
            return await self.gateway.get_admin_stats(day)
        except (TransportError, ServerError) as e:
            logger.warning(f"Admin stats unavailable ({e.message}) — showing zeros")
            return AdminStatsOut(date=str(day or datetime.utcnow().date()))
