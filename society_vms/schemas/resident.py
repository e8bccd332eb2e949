from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ResidentAuth(BaseModel):
    phone: str
    email: str
    flat_code: str


class ResidentOut(BaseModel):
    id: str
    phone: str
    email: str
    flat_id: int
    flat_code: Optional[str] = None
    full_name: Optional[str] = None
    role: str = "resident"
    is_active: bool = True
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True
