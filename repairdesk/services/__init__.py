# Services module
from repairdesk.services.email_service import EmailService, MockEmailService, get_email_service
from repairdesk.services.notifier import Notifier
from repairdesk.services.status_workflow import ServiceWorkflow

__all__ = [
    "EmailService",
    "MockEmailService",
    "get_email_service",
    "Notifier",
    "ServiceWorkflow",
]
