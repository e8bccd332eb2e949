from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class VisitorRequestCreate(BaseModel):
    visitor_name: str
    flat_code: str
    photo_url: Optional[str] = None        # remote URL or inline data: URL
    vehicle_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    visitor_phone: Optional[str] = None
    purpose: Optional[str] = None          # blank → "Other"
    guard_id: Optional[str] = None         # blank → settings.DEFAULT_GUARD_ID


class StatusAction(BaseModel):
    actor_id: str


class VisitorRequestOut(BaseModel):
    id: str
    guard_id: Optional[str]
    flat_id: int
    flat_code: Optional[str] = None
    wing: Optional[str] = None
    visitor_name: str
    visitor_phone: Optional[str] = None
    photo_url: str
    vehicle_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    purpose: str
    status: str
    entry_time: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    denied_at: Optional[datetime] = None
    approver_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
