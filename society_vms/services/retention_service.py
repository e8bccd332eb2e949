"""
Retention sweep — deletes visitor requests older than RETENTION_DAYS regardless of
status and records the deleted count in audit_logs.

Clients must tolerate a request vanishing between a list fetch and an action;
the lifecycle service reports those as NotFoundError.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import delete
from sqlalchemy.orm import Session
from society_vms.config import settings
from society_vms.database import SessionLocal
from society_vms.models.audit_log import AuditLog
from society_vms.models.visitor_request import VisitorRequest
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)


def sweep_expired_requests(db: Session, now: Optional[datetime] = None,
                           days: Optional[int] = None) -> tuple[int, datetime]:
    """Returns (deleted_count, cutoff). Always commits."""
    now = now or datetime.utcnow()
    cutoff = now - timedelta(days=days or settings.RETENTION_DAYS)

    result = db.execute(
        delete(VisitorRequest)
        .where(VisitorRequest.created_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    deleted = result.rowcount or 0
    db.add(AuditLog(table_name="visitor_requests", operation="CLEANUP",
                    new_data={"deleted_count": deleted, "cutoff": cutoff.isoformat()},
                    created_at=now))
    db.commit()
    logger.info(f"[RETENTION] Deleted {deleted} visitor requests created before {cutoff:%Y-%m-%d %H:%M}")
    return deleted, cutoff


async def run_retention_schedule(interval_seconds: int):
    """
    Runs the sweep forever, once per interval, with a fresh DB session each time.
    Started once at backend startup.
    """
    logger.info(f"🧹 Retention sweep scheduled every {interval_seconds}s "
                f"({settings.RETENTION_DAYS}-day window)")
    while True:
        db = SessionLocal()
        try:
            sweep_expired_requests(db)
        except Exception as e:
            logger.error(f"Retention sweep failed: {e}", exc_info=True)
        finally:
            db.close()
        await asyncio.sleep(interval_seconds)
