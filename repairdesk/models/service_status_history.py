"""
Service status history: one append-only row per status change.
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
import uuid

from repairdesk.database import Base
from repairdesk.timeutils import utcnow


class ServiceStatusHistory(Base):
    __tablename__ = "service_status_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    service_id = Column(String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(40), nullable=False)
    notes = Column(Text, nullable=False, default="")
    changed_by = Column(String(255), nullable=False)  # user email or "system"
    changed_at = Column(DateTime, default=utcnow, nullable=False)

    service = relationship("Service", back_populates="status_history")

    def __repr__(self):
        return f"<ServiceStatusHistory {self.status} on {self.service_id}>"
