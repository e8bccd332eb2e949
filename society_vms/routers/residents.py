"""Resident registration / login (upsert by phone) and session verification."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from society_vms.database import get_db
from society_vms.schemas.resident import ResidentAuth, ResidentOut
from society_vms.services.resident_service import authenticate_resident, get_resident
from society_vms.utils.exceptions import NotFoundError

router = APIRouter()


@router.post("/residents/auth", response_model=ResidentOut, summary="Register or log in a resident")
async def resident_auth(body: ResidentAuth, db: Session = Depends(get_db)):
    """Same phone → same resident id; email, flat and last_login are refreshed."""
    return await authenticate_resident(db, body.phone, body.email, body.flat_code)


@router.get("/residents/{resident_id}", response_model=ResidentOut, summary="Verify a resident session")
def get_resident_by_id(resident_id: str, db: Session = Depends(get_db)):
    resident = get_resident(db, resident_id)
    if not resident:
        raise NotFoundError("Resident not found")
    return resident
