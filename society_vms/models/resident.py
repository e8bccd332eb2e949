"""
Residents table — one persistent identity per phone number.
Created on first registration, updated on every re-login, never hard-deleted here.
"""

import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from society_vms.database import Base


class Resident(Base):
    __tablename__ = "residents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    phone = Column(String(15), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    flat_id = Column(Integer, ForeignKey("flats.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(255))
    role = Column(String(20), default="resident", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    flat = relationship("Flat", lazy="joined")

    @property
    def flat_code(self):
        return self.flat.flat_code if self.flat else None

    def __repr__(self):
        return f"<Resident {self.id} phone={self.phone} flat_id={self.flat_id}>"
