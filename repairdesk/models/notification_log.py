"""Customer email notification attempts."""

from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
import enum
import uuid

from repairdesk.database import Base
from repairdesk.timeutils import utcnow


class NotificationType(str, enum.Enum):
    SERVICE_RECEIVED = "SERVICE_RECEIVED"
    CUSTOMER_APPROVAL_PENDING = "CUSTOMER_APPROVAL_PENDING"
    SERVICE_COMPLETED = "SERVICE_COMPLETED"
    PAYMENT_REMINDER = "PAYMENT_REMINDER"


class NotificationStatus(str, enum.Enum):
    SENT = "SENT"
    FAILED = "FAILED"


class NotificationLog(Base):
    """One row per delivery attempt. Never updated."""

    __tablename__ = "notification_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(String(40), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_email = Column(String(255), nullable=False)
    status = Column(String(10), nullable=False, index=True)
    subject = Column(String(500), nullable=False, default="")
    error = Column(Text, nullable=True)
    sent_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    service = relationship("Service")

    def __repr__(self):
        return f"<NotificationLog {self.type} {self.status}>"
