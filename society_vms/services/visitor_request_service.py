"""
Visitor request lifecycle — persistence side.

How it works:
  - Guard submits → create_visitor_request validates, resolves the flat, stores a
    pending row and publishes INSERT on the change feed
  - Resident approves / denies → update_request_status checks the resident is of
    record for the flat, then runs a conditional UPDATE … WHERE status='pending'
  - Guard allows entry → mark_entry runs UPDATE … WHERE status='approved'
  - A conditional update that touches no row is re-read: a missing row is
    NotFoundError (e.g. removed by the retention sweep), a row in another state is
    InvalidTransitionError. Timestamps are therefore never stamped twice.
"""

from datetime import date, datetime, timedelta
from typing import Optional
from sqlalchemy import func, update
from sqlalchemy.orm import Session
from society_vms.config import settings
from society_vms.models.flat import Flat
from society_vms.models.visitor_request import VisitorRequest
from society_vms.schemas.visitor_request import VisitorRequestCreate
from society_vms.services import state_machine as sm
from society_vms.services.change_feed import INSERT, UPDATE, change_feed
from society_vms.services.flat_service import require_flat
from society_vms.services.resident_service import get_resident
from society_vms.utils.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    NotResidentOfRecordError,
    ValidationError,
)
from society_vms.utils.validators import (
    check_visitor_field_lengths,
    purpose_or_default,
    require_photo,
    require_visitor_name,
)
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def get_request(db: Session, request_id: str) -> Optional[VisitorRequest]:
    return db.query(VisitorRequest).filter(VisitorRequest.id == request_id).first()


async def create_visitor_request(db: Session, body: VisitorRequestCreate) -> VisitorRequest:
    name = require_visitor_name(body.visitor_name)
    photo = require_photo(body.photo_url)
    fields = check_visitor_field_lengths({
        "guard_id": _clean(body.guard_id) or settings.DEFAULT_GUARD_ID,
        "visitor_name": name,
        "visitor_phone": _clean(body.visitor_phone),
        "vehicle_type": _clean(body.vehicle_type),
        "vehicle_number": _clean(body.vehicle_number),
    })
    flat = require_flat(db, body.flat_code)

    request = VisitorRequest(
        flat_id=flat.id,
        photo_url=photo,
        purpose=purpose_or_default(body.purpose),
        status=sm.PENDING,
        created_at=datetime.utcnow(),
        **fields,
    )
    db.add(request)
    db.commit()
    db.refresh(request)

    logger.info(f"[SUBMIT] request={request.id} flat={flat.flat_code} visitor={name}")
    change_feed.publish_request(INSERT, request)
    return request


def _raise_for_missed_transition(db: Session, request_id: str, event: str):
    db.rollback()
    current = get_request(db, request_id)
    if current is None:
        raise NotFoundError("Request not found")
    sm.next_status(current.status, event)   # raises InvalidTransitionError
    # Status matched on re-read but the guarded write did not apply; another writer won.
    raise InvalidTransitionError("Request was changed by someone else")


async def _apply_transition(db: Session, request_id: str, event: str, extra: dict) -> VisitorRequest:
    required, target, stamp_column = sm.transition_for(event)
    now = datetime.utcnow()
    values = {"status": target, stamp_column: now, "updated_at": now, **extra}

    stmt = (
        update(VisitorRequest)
        .where(VisitorRequest.id == request_id, VisitorRequest.status == required)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount == 0:
        _raise_for_missed_transition(db, request_id, event)
    db.commit()

    request = get_request(db, request_id)
    if request is None:
        raise NotFoundError("Request not found")
    db.refresh(request)

    logger.info(f"[{event.upper()}] request={request_id} {required} → {target}")
    change_feed.publish_request(UPDATE, request)
    return request


async def update_request_status(db: Session, request_id: str, status: str, actor_id: str) -> VisitorRequest:
    """Approve or deny a pending request on behalf of a resident of its flat."""
    event = sm.STATUS_EVENTS.get(status)
    if event is None:
        raise ValidationError(f"Unsupported status '{status}'")

    request = get_request(db, request_id)
    if request is None:
        raise NotFoundError("Request not found")

    actor = get_resident(db, actor_id) if actor_id else None
    if actor is None:
        raise NotFoundError("Resident not found")
    if actor.flat_id != request.flat_id:
        logger.warning(f"[{event.upper()}] resident {actor_id} is not of record for request {request_id}")
        raise NotResidentOfRecordError("Only a resident of this flat can act on the request")

    return await _apply_transition(db, request_id, event, {"approver_id": actor.id})


async def mark_entry(db: Session, request_id: str) -> VisitorRequest:
    """Guard lets an approved visitor in; any other status is rejected untouched."""
    return await _apply_transition(db, request_id, sm.ALLOW_ENTRY, {})


# ── Queries ──────────────────────────────────────────────────────────────────

def list_pending_requests(db: Session) -> list[VisitorRequest]:
    return (
        db.query(VisitorRequest)
        .filter(VisitorRequest.status == sm.PENDING)
        .order_by(VisitorRequest.created_at.desc())
        .all()
    )


def list_awaiting_entry(db: Session) -> list[VisitorRequest]:
    """Approved requests the guard still has to let in."""
    return (
        db.query(VisitorRequest)
        .filter(VisitorRequest.status == sm.APPROVED)
        .order_by(VisitorRequest.approved_at.desc())
        .all()
    )


def list_pending_for_flat(db: Session, flat_id: int) -> list[VisitorRequest]:
    return (
        db.query(VisitorRequest)
        .filter(VisitorRequest.flat_id == flat_id, VisitorRequest.status == sm.PENDING)
        .order_by(VisitorRequest.created_at.desc())
        .all()
    )


def list_history_for_flat(db: Session, flat_id: int, limit: Optional[int] = None) -> list[VisitorRequest]:
    return (
        db.query(VisitorRequest)
        .filter(VisitorRequest.flat_id == flat_id, VisitorRequest.status != sm.PENDING)
        .order_by(VisitorRequest.created_at.desc())
        .limit(limit or settings.HISTORY_LIMIT)
        .all()
    )


def _day_range(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


def list_all_requests(db: Session, wing: Optional[str] = None, day: Optional[date] = None,
                      limit: Optional[int] = None) -> list[VisitorRequest]:
    """Admin listing: newest first, 50 by default, 100 when a filter is applied."""
    q = db.query(VisitorRequest).join(Flat, VisitorRequest.flat_id == Flat.id)
    if wing:
        q = q.filter(Flat.wing == wing.strip().upper())
    if day:
        start, end = _day_range(day)
        q = q.filter(VisitorRequest.created_at >= start, VisitorRequest.created_at < end)

    if limit is None:
        limit = settings.ADMIN_SEARCH_LIMIT if (wing or day) else settings.ADMIN_LIST_LIMIT
    return q.order_by(VisitorRequest.created_at.desc()).limit(limit).all()


def get_admin_stats(db: Session, day: Optional[date] = None) -> dict:
    day = day or datetime.utcnow().date()
    start, end = _day_range(day)
    created_today = (VisitorRequest.created_at >= start, VisitorRequest.created_at < end)

    def count(*filters) -> int:
        return db.query(func.count(VisitorRequest.id)).filter(*filters).scalar() or 0

    return {
        "date": str(day),
        "todayVisitors": count(*created_today),
        "pendingApprovals": count(VisitorRequest.status == sm.PENDING),
        "approvedToday": count(*created_today, VisitorRequest.approved_at.isnot(None)),
        "deniedToday": count(*created_today, VisitorRequest.status == sm.DENIED),
    }
