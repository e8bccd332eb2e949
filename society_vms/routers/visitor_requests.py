"""
Visitor request lifecycle endpoints.
POST /visitor-requests           — guard submits (status=pending)
PUT  /visitor-requests/{id}/...  — approve / deny (resident), entry (guard)
GET  /visitor-requests/...       — guard and resident lists
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from society_vms.config import settings
from society_vms.database import get_db
from society_vms.schemas.visitor_request import StatusAction, VisitorRequestCreate, VisitorRequestOut
from society_vms.services import state_machine as sm
from society_vms.services import visitor_request_service as service

router = APIRouter()


@router.post("/visitor-requests", response_model=VisitorRequestOut, summary="Submit a visitor request")
async def submit_visitor_request(body: VisitorRequestCreate, db: Session = Depends(get_db)):
    return await service.create_visitor_request(db, body)


@router.get("/visitor-requests/pending", response_model=list[VisitorRequestOut],
            summary="All pending requests (guard)")
def get_pending_requests(db: Session = Depends(get_db)):
    return service.list_pending_requests(db)


@router.get("/visitor-requests/awaiting-entry", response_model=list[VisitorRequestOut],
            summary="Approved requests waiting for entry (guard)")
def get_awaiting_entry(db: Session = Depends(get_db)):
    return service.list_awaiting_entry(db)


@router.get("/visitor-requests/pending/{flat_id}", response_model=list[VisitorRequestOut],
            summary="Pending requests for one flat (resident)")
def get_pending_for_flat(flat_id: int, db: Session = Depends(get_db)):
    return service.list_pending_for_flat(db, flat_id)


@router.get("/visitor-requests/history/{flat_id}", response_model=list[VisitorRequestOut],
            summary="Decided requests for one flat (resident)")
def get_history_for_flat(flat_id: int, limit: Optional[int] = Query(None, ge=1, le=settings.HISTORY_LIMIT),
                         db: Session = Depends(get_db)):
    return service.list_history_for_flat(db, flat_id, limit)


@router.put("/visitor-requests/{request_id}/approve", response_model=VisitorRequestOut,
            summary="Approve a pending request")
async def approve_request(request_id: str, body: StatusAction, db: Session = Depends(get_db)):
    return await service.update_request_status(db, request_id, sm.APPROVED, body.actor_id)


@router.put("/visitor-requests/{request_id}/deny", response_model=VisitorRequestOut,
            summary="Deny a pending request")
async def deny_request(request_id: str, body: StatusAction, db: Session = Depends(get_db)):
    return await service.update_request_status(db, request_id, sm.DENIED, body.actor_id)


@router.put("/visitor-requests/{request_id}/entry", response_model=VisitorRequestOut,
            summary="Allow entry for an approved request")
async def allow_entry(request_id: str, db: Session = Depends(get_db)):
    return await service.mark_entry(db, request_id)
