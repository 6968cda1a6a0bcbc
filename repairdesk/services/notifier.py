"""Customer notification dispatch.

Runs after the status change has been committed (FastAPI background task),
so it opens its own database session. Every attempt writes exactly one
NotificationLog row; failures are logged and never propagate.
"""

from typing import Callable
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from repairdesk.models.notification_log import NotificationLog, NotificationStatus, NotificationType
from repairdesk.models.service import Service
from repairdesk.services.email_service import EmailService
from repairdesk.services.notification_templates import MissingTemplateDataError, build_email
from repairdesk.services.status_workflow import NotificationRequest
from repairdesk.timeutils import utcnow

logger = logging.getLogger(__name__)


class Notifier:
    """Composes and sends service notification emails."""

    def __init__(self, email_service: EmailService, session_factory: Callable[[], AsyncSession]):
        self.email_service = email_service
        self.session_factory = session_factory

    async def send(self, request: NotificationRequest) -> bool:
        """Send one notification. Returns True when the email was accepted."""
        async with self.session_factory() as db:
            subject = ""
            error = None
            try:
                result = await db.execute(
                    select(Service)
                    .where(Service.id == request.service_id)
                    .options(selectinload(Service.customer))
                )
                service = result.scalar_one_or_none()
                if service is None:
                    # Nothing to log against: the FK would be dangling
                    logger.warning(f"Notification skipped, service {request.service_id} not found")
                    return False

                subject, html_body, text_body = build_email(
                    NotificationType(request.type), service, request.estimated_fee
                )
                response = await self.email_service.send_email(
                    to=request.customer_email,
                    subject=subject,
                    body=text_body,
                    html_body=html_body,
                )
                if not response.get("success"):
                    error = response.get("error") or "Email delivery failed"
            except MissingTemplateDataError as e:
                error = str(e)
            except SQLAlchemyError as e:
                logger.error(f"Notification lookup failed for service {request.service_id}: {e}")
                return False
            except Exception as e:
                logger.exception(f"Unexpected error sending notification for {request.service_number}")
                error = str(e) or e.__class__.__name__

            status = NotificationStatus.FAILED if error else NotificationStatus.SENT
            db.add(
                NotificationLog(
                    type=NotificationType(request.type).value,
                    service_id=request.service_id,
                    customer_email=request.customer_email,
                    status=status.value,
                    subject=subject,
                    error=error,
                    sent_at=utcnow(),
                )
            )
            try:
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Could not write notification log for service {request.service_id}: {e}")

            if error:
                logger.warning(
                    f"Notification {request.type} for {request.service_number} failed: {error}",
                    extra={"service_id": request.service_id},
                )
                return False

            logger.info(
                f"Notification {request.type} sent for {request.service_number}",
                extra={"service_id": request.service_id, "to": request.customer_email},
            )
            return True
