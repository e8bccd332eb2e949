"""Admin reporting: day counters, visitor record search, manual retention sweep."""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from society_vms.config import settings
from society_vms.database import get_db
from society_vms.schemas.stats import AdminStatsOut, SweepResultOut
from society_vms.schemas.visitor_request import VisitorRequestOut
from society_vms.services import visitor_request_service as service
from society_vms.services.retention_service import sweep_expired_requests

router = APIRouter()


@router.get("/admin/stats", response_model=AdminStatsOut, summary="Visitor counters for a day")
def get_admin_stats(target_date: Optional[date] = None, db: Session = Depends(get_db)):
    """Defaults to today. pendingApprovals counts all pending requests, not just today's."""
    return service.get_admin_stats(db, target_date)


@router.get("/admin/visitor-records", response_model=list[VisitorRequestOut],
            summary="Visitor records, optionally filtered by wing and date")
def get_visitor_records(wing: Optional[str] = None, day: Optional[date] = Query(None, alias="date"),
                        limit: Optional[int] = Query(None, ge=1, le=settings.ADMIN_SEARCH_LIMIT),
                        db: Session = Depends(get_db)):
    return service.list_all_requests(db, wing=wing, day=day, limit=limit)


@router.post("/admin/retention/sweep", response_model=SweepResultOut,
             summary="Delete visitor requests past the retention window")
def run_retention_sweep(db: Session = Depends(get_db)):
    deleted, cutoff = sweep_expired_requests(db)
    return {"deleted": deleted, "cutoff": cutoff.isoformat()}
