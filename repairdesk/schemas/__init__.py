from repairdesk.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
    CustomerListItem,
    CustomerDetail,
)
from repairdesk.schemas.service import (
    ServiceCreate,
    ServiceUpdate,
    StatusUpdateRequest,
    ServiceSummary,
    ServiceDetail,
    ServiceListResponse,
)
from repairdesk.schemas.finance import (
    FinancialRecordCreate,
    FinancialRecordUpdate,
    FinancialRecordResponse,
    FinancialRecordListResponse,
)
from repairdesk.schemas.auth import LoginRequest, Token, UserCreate, UserResponse

__all__ = [
    "CustomerCreate",
    "CustomerUpdate",
    "CustomerResponse",
    "CustomerListItem",
    "CustomerDetail",
    "ServiceCreate",
    "ServiceUpdate",
    "StatusUpdateRequest",
    "ServiceSummary",
    "ServiceDetail",
    "ServiceListResponse",
    "FinancialRecordCreate",
    "FinancialRecordUpdate",
    "FinancialRecordResponse",
    "FinancialRecordListResponse",
    "LoginRequest",
    "Token",
    "UserCreate",
    "UserResponse",
]
