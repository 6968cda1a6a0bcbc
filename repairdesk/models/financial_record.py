from sqlalchemy import Column, String, DateTime, Text, Numeric, ForeignKey
from sqlalchemy.orm import relationship
import enum
import uuid

from repairdesk.database import Base
from repairdesk.timeutils import utcnow


class RecordType(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class FinancialRecord(Base):
    """Ledger entry. Service income records are keyed one-per-service."""

    __tablename__ = "financial_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    amount = Column(Numeric(10, 2), nullable=False)
    type = Column(String(10), nullable=False, index=True)
    description = Column(Text)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), unique=True, nullable=True)
    recorded_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    service = relationship("Service", back_populates="financial_record")

    def __repr__(self):
        return f"<FinancialRecord {self.type} {self.amount}>"
