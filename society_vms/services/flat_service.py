"""
Flat directory queries and the one-time flat seed.
Flats are immutable after seeding; nothing here updates or deletes them.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from society_vms.config import settings
from society_vms.models.flat import Flat
from society_vms.utils.exceptions import ValidationError
from society_vms.utils.validators import iter_flat_layout, normalize_flat_code
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)


def list_flats(db: Session) -> list[Flat]:
    return db.query(Flat).order_by(Flat.wing, Flat.flat_number).all()


def get_flat(db: Session, flat_code: str) -> Optional[Flat]:
    code = (flat_code or "").strip().upper()
    if not code:
        return None
    return db.query(Flat).filter(Flat.flat_code == code).first()


def require_flat(db: Session, flat_code: str) -> Flat:
    """Resolve a flat code or raise ValidationError('Invalid flat code')."""
    flat = get_flat(db, normalize_flat_code(flat_code))
    if not flat:
        raise ValidationError("Invalid flat code")
    return flat


def seed_flats(db: Session) -> int:
    """Insert every flat of the configured layout that is not already present."""
    existing = {code for (code,) in db.query(Flat.flat_code).all()}
    created = 0
    for wing, number in iter_flat_layout(settings.WING_LIST, settings.FLAT_FLOORS,
                                         settings.FLAT_UNITS_PER_FLOOR):
        code = f"{wing}{number}"
        if code in existing:
            continue
        db.add(Flat(wing=wing, flat_number=number, flat_code=code,
                    is_active=True, created_at=datetime.utcnow()))
        created += 1
    db.commit()
    logger.info(f"Flat seed: {created} created, {len(existing)} already present")
    return created
