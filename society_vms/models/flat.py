"""
Flats table — the society's residential units.
Seeded once (wing × floor × unit) by scripts/setup/init_db.py and read-only afterwards.
"""

from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, DateTime, UniqueConstraint
from society_vms.database import Base


class Flat(Base):
    __tablename__ = "flats"
    __table_args__ = (UniqueConstraint("wing", "flat_number", name="uq_flats_wing_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    wing = Column(String(1), nullable=False, index=True)
    flat_number = Column(Integer, nullable=False)               # 101..505
    flat_code = Column(String(10), unique=True, nullable=False, index=True)  # wing + number, e.g. B203
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Flat {self.flat_code} id={self.id}>"
