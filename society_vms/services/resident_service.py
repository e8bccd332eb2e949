"""
Resident identity — upsert by phone number.

A phone number maps to at most one resident id. Registering again with the same
phone updates email, flat and last_login in place. An email that already belongs
to a different phone is rejected rather than reassigned.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from society_vms.models.resident import Resident
from society_vms.services.flat_service import require_flat
from society_vms.utils.exceptions import ValidationError
from society_vms.utils.validators import validate_email, validate_phone
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)


async def authenticate_resident(db: Session, phone: str, email: str, flat_code: str) -> Resident:
    phone = validate_phone(phone)
    email = validate_email(email)
    flat = require_flat(db, flat_code)

    email_owner = db.query(Resident).filter(Resident.email == email, Resident.phone != phone).first()
    if email_owner:
        raise ValidationError("Email is already registered with another phone number")

    now = datetime.utcnow()
    resident = db.query(Resident).filter(Resident.phone == phone).first()
    if resident:
        resident.email = email
        resident.flat_id = flat.id
        resident.last_login = now
        resident.updated_at = now
        logger.info(f"Resident re-login: id={resident.id} flat={flat.flat_code}")
    else:
        resident = Resident(phone=phone, email=email, flat_id=flat.id, role="resident",
                            is_active=True, last_login=now, created_at=now, updated_at=now)
        db.add(resident)
        logger.info(f"Resident registered: phone=***{phone[-4:]} flat={flat.flat_code}")

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Resident upsert conflict for phone=***{phone[-4:]}")
        raise ValidationError("Phone or email is already registered")

    db.refresh(resident)
    return resident


def get_resident(db: Session, resident_id: str) -> Optional[Resident]:
    """Active resident by id, or None (unknown or deactivated)."""
    return (
        db.query(Resident)
        .filter(Resident.id == resident_id, Resident.is_active == True)  # noqa: E712
        .first()
    )
