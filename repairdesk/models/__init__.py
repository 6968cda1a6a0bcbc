from repairdesk.models.user import User, UserRole
from repairdesk.models.customer import Customer
from repairdesk.models.service import Service, ServiceStatus, DeviceType, COMPLETED_STATUSES
from repairdesk.models.service_status_history import ServiceStatusHistory
from repairdesk.models.financial_record import FinancialRecord, RecordType
from repairdesk.models.notification_log import NotificationLog, NotificationType, NotificationStatus

__all__ = [
    "User",
    "UserRole",
    "Customer",
    "Service",
    "ServiceStatus",
    "DeviceType",
    "COMPLETED_STATUSES",
    "ServiceStatusHistory",
    "FinancialRecord",
    "RecordType",
    "NotificationLog",
    "NotificationType",
    "NotificationStatus",
]
