from datetime import datetime
from typing import Optional

from pydantic import field_validator

from repairdesk.schemas.base import CamelModel
from repairdesk.schemas.auth import UserSummary


class CustomerCreate(CamelModel):
    """Name and phone are required; checked by the route so the 400 lists both."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    @field_validator("name", "phone", "email", "address", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class CustomerUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    @field_validator("email", "address", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class CustomerServiceBrief(CamelModel):
    """Service row shown under a customer."""

    id: str
    service_number: str
    device_type: str
    brand: str
    model: str
    status: str
    created_at: datetime


class CustomerServiceItem(CustomerServiceBrief):
    technician: Optional[UserSummary] = None


class CustomerResponse(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: str
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CustomerListItem(CustomerResponse):
    services: list[CustomerServiceBrief] = []


class CustomerDetail(CustomerResponse):
    services: list[CustomerServiceItem] = []


class CustomerSummary(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: str
