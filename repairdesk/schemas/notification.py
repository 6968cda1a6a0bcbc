from datetime import datetime
from typing import Optional

from repairdesk.schemas.base import CamelModel
from repairdesk.schemas.customer import CustomerSummary


class NotificationServiceBrief(CamelModel):
    id: str
    service_number: str
    customer: Optional[CustomerSummary] = None


class NotificationLogResponse(CamelModel):
    id: str
    type: str
    service_id: str
    customer_email: str
    status: str
    subject: str
    error: Optional[str] = None
    sent_at: datetime
    service: Optional[NotificationServiceBrief] = None


class SendNotificationRequest(CamelModel):
    type: Optional[str] = None
    service_id: Optional[str] = None
    customer_email: Optional[str] = None
    estimated_fee: Optional[float] = None


class SendNotificationResponse(CamelModel):
    message: str
    type: str
    service_id: str
