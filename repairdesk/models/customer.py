from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import relationship
import uuid

from repairdesk.database import Base
from repairdesk.timeutils import utcnow


class Customer(Base):
    """Customer model."""

    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False, index=True)
    email = Column(String(255), index=True)
    phone = Column(String(30), nullable=False)
    address = Column(Text)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    services = relationship("Service", back_populates="customer", order_by="Service.created_at.desc()")

    def __repr__(self):
        return f"<Customer {self.name}>"
