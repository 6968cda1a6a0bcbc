from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
import enum
import uuid

from repairdesk.database import Base
from repairdesk.timeutils import utcnow


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    TECHNICIAN = "TECHNICIAN"


class User(Base):
    """Staff account. Technicians are users with role TECHNICIAN."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.TECHNICIAN.value)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    services = relationship("Service", back_populates="technician")

    def __repr__(self):
        return f"<User {self.email}>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
