from datetime import datetime
from typing import Optional

from repairdesk.schemas.base import CamelModel, Pagination
from repairdesk.schemas.types import Money
from repairdesk.schemas.auth import UserSummary
from repairdesk.schemas.customer import CustomerSummary


class ServiceCreate(CamelModel):
    """Intake form. Required fields are validated by the workflow so every
    missing one is reported in a single 400."""

    customer_id: Optional[str] = None
    device_type: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    problem_description: Optional[str] = None
    serial_number: Optional[str] = None
    imei: Optional[str] = None
    accessories: Optional[str] = None
    physical_condition: Optional[str] = None
    estimated_fee: Optional[float] = None
    technician_id: Optional[str] = None


class ServiceUpdate(CamelModel):
    """General edit. A changed `status` runs the status workflow."""

    device_type: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    imei: Optional[str] = None
    problem_description: Optional[str] = None
    accessories: Optional[str] = None
    physical_condition: Optional[str] = None
    estimated_fee: Optional[float] = None
    actual_fee: Optional[float] = None
    technician_id: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class StatusUpdateRequest(CamelModel):
    status: Optional[str] = None
    notes: Optional[str] = None
    technician_id: Optional[str] = None
    actual_fee: Optional[float] = None


class StatusHistoryResponse(CamelModel):
    id: str
    status: str
    notes: str
    changed_by: str
    changed_at: datetime


class ServiceFinancialRecord(CamelModel):
    id: str
    amount: Money
    type: str
    description: Optional[str] = None
    recorded_at: datetime


class ServiceSummary(CamelModel):
    """Service with customer and technician; used in lists."""

    id: str
    service_number: str
    customer_id: str
    technician_id: Optional[str] = None
    device_type: str
    brand: str
    model: str
    serial_number: Optional[str] = None
    imei: Optional[str] = None
    problem_description: str
    accessories: Optional[str] = None
    physical_condition: Optional[str] = None
    estimated_fee: Optional[Money] = None
    actual_fee: Optional[Money] = None
    status: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    customer: CustomerSummary
    technician: Optional[UserSummary] = None


class ServiceDetail(ServiceSummary):
    """Full service view: history newest first plus the income record."""

    status_history: list[StatusHistoryResponse] = []
    financial_record: Optional[ServiceFinancialRecord] = None


class ServiceListResponse(CamelModel):
    services: list[ServiceSummary]
    pagination: Pagination


class TransitionsResponse(CamelModel):
    status: str
    allowed: list[str]
    terminal: bool
    enforced: bool


class ServiceStatsResponse(CamelModel):
    active_services: int
    completed_services: int
    pending_services: int
    monthly_revenue: float
    active_change: float
    completed_change: float
    pending_change: float
    revenue_change: float
