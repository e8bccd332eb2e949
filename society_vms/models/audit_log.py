"""
Audit log table. The retention sweep records one CLEANUP row per run.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON
from society_vms.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_name = Column(String(50), nullable=False)
    operation = Column(String(20), nullable=False)   # CLEANUP
    new_data = Column(JSON)
    user_id = Column(String(36))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog {self.id} {self.operation} {self.table_name}>"
