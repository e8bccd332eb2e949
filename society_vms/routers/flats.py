"""Flat directory endpoints — read-only."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from society_vms.database import get_db
from society_vms.schemas.flat import FlatOut
from society_vms.services.flat_service import get_flat, list_flats
from society_vms.utils.exceptions import NotFoundError

router = APIRouter()


@router.get("/flats", response_model=list[FlatOut], summary="List all flats")
def get_all_flats(db: Session = Depends(get_db)):
    return list_flats(db)


@router.get("/flats/{flat_code}", response_model=FlatOut, summary="Look up a flat by code")
def get_flat_by_code(flat_code: str, db: Session = Depends(get_db)):
    flat = get_flat(db, flat_code)
    if not flat:
        raise NotFoundError("Flat not found")
    return flat
