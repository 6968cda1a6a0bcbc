from sqlalchemy import Column, String, DateTime, Text, Numeric, ForeignKey
from sqlalchemy.orm import relationship
import enum
import uuid

from repairdesk.database import Base
from repairdesk.timeutils import utcnow


class ServiceStatus(str, enum.Enum):
    RECEIVED = "RECEIVED"
    DIAGNOSIS_PENDING = "DIAGNOSIS_PENDING"
    CUSTOMER_APPROVAL_PENDING = "CUSTOMER_APPROVAL_PENDING"
    PARTS_PENDING = "PARTS_PENDING"
    REPAIRING = "REPAIRING"
    COMPLETED_READY_FOR_DELIVERY = "COMPLETED_READY_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class DeviceType(str, enum.Enum):
    PHONE = "PHONE"
    LAPTOP = "LAPTOP"
    TABLET = "TABLET"
    DESKTOP = "DESKTOP"
    OTHER = "OTHER"


# Statuses that count as finished work in dashboards and analytics
COMPLETED_STATUSES = (
    ServiceStatus.COMPLETED_READY_FOR_DELIVERY.value,
    ServiceStatus.DELIVERED.value,
)


class Service(Base):
    """A device repair ticket moving through the status workflow."""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    service_number = Column(String(40), unique=True, index=True, nullable=False)

    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    technician_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    # Device
    device_type = Column(String(20), nullable=False)
    brand = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    serial_number = Column(String(100))
    imei = Column(String(30))

    # Intake
    problem_description = Column(Text, nullable=False)
    accessories = Column(Text)
    physical_condition = Column(Text)

    # Financial
    estimated_fee = Column(Numeric(10, 2))
    actual_fee = Column(Numeric(10, 2))

    status = Column(String(40), nullable=False, default=ServiceStatus.RECEIVED.value, index=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime)
    delivered_at = Column(DateTime)

    # Relationships
    customer = relationship("Customer", back_populates="services")
    technician = relationship("User", back_populates="services")
    status_history = relationship(
        "ServiceStatusHistory",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServiceStatusHistory.changed_at.desc()",
    )
    financial_record = relationship("FinancialRecord", back_populates="service", uselist=False)

    def __repr__(self):
        return f"<Service {self.service_number} - {self.status}>"
