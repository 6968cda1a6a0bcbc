from datetime import datetime
from typing import Optional

from repairdesk.schemas.base import CamelModel, Pagination
from repairdesk.schemas.types import Money


class FinancialRecordCreate(CamelModel):
    amount: Optional[float] = None
    type: Optional[str] = None
    description: Optional[str] = None
    service_id: Optional[str] = None


class FinancialRecordUpdate(CamelModel):
    amount: Optional[float] = None
    type: Optional[str] = None
    description: Optional[str] = None


class RecordServiceBrief(CamelModel):
    id: str
    service_number: str
    brand: str
    model: str


class FinancialRecordResponse(CamelModel):
    id: str
    amount: Money
    type: str
    description: Optional[str] = None
    service_id: Optional[str] = None
    recorded_at: datetime
    service: Optional[RecordServiceBrief] = None


class FinanceSummary(CamelModel):
    income: float
    expense: float
    net: float
    transaction_count: int


class FinancialRecordListResponse(CamelModel):
    records: list[FinancialRecordResponse]
    pagination: Pagination
    summary: FinanceSummary
