"""
Visitor requests table — one row per visit attempt.
Status moves pending → approved|denied → completed (from approved only).
approved_at / denied_at / entry_time are each stamped exactly once by the transition
that owns them; see services/state_machine.py.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from society_vms.database import Base


class VisitorRequest(Base):
    __tablename__ = "visitor_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    guard_id = Column(String(50), default="guard-1", index=True)
    flat_id = Column(Integer, ForeignKey("flats.id", ondelete="CASCADE"), nullable=False, index=True)
    visitor_name = Column(String(255), nullable=False)
    visitor_phone = Column(String(15))
    photo_url = Column(Text, nullable=False)          # remote URL or inline data: URL
    vehicle_type = Column(String(20))
    vehicle_number = Column(String(20))
    purpose = Column(Text, nullable=False, default="Other")
    status = Column(String(20), nullable=False, default="pending", index=True)
    entry_time = Column(DateTime)
    approved_at = Column(DateTime)
    denied_at = Column(DateTime)
    approver_id = Column(String(36), ForeignKey("residents.id", ondelete="SET NULL"))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    flat = relationship("Flat", lazy="joined")

    @property
    def flat_code(self):
        return self.flat.flat_code if self.flat else None

    @property
    def wing(self):
        return self.flat.wing if self.flat else None

    def __repr__(self):
        return f"<VisitorRequest {self.id} status={self.status} flat_id={self.flat_id}>"
