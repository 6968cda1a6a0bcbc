"""Notifications API - customer email log and manual sends."""

from fastapi import APIRouter, Query
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import Literal

from repairdesk.api.deps import CurrentUser, DbSession, NotifierDep
from repairdesk.exceptions import ErrorCode, ExternalServiceError, MissingFieldsError, NotFoundError, ValidationError
from repairdesk.models.notification_log import NotificationLog, NotificationType
from repairdesk.models.service import Service
from repairdesk.schemas.notification import (
    NotificationLogResponse,
    SendNotificationRequest,
    SendNotificationResponse,
)
from repairdesk.services.status_workflow import NotificationRequest

router = APIRouter()

LOG_LIMIT = 100


@router.get("", response_model=list[NotificationLogResponse])
async def list_notifications(
    current_user: CurrentUser,
    db: DbSession,
    status_filter: Literal["SENT", "FAILED", "all"] = Query("all", alias="status"),
):
    """Latest notification attempts with their service and customer."""
    query = select(NotificationLog).options(
        selectinload(NotificationLog.service).selectinload(Service.customer)
    )
    if status_filter != "all":
        query = query.where(NotificationLog.status == status_filter)

    result = await db.execute(query.order_by(NotificationLog.sent_at.desc()).limit(LOG_LIMIT))
    return result.scalars().all()


@router.post("/email", response_model=SendNotificationResponse)
async def send_notification_email(
    request: SendNotificationRequest,
    db: DbSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
):
    """Send a notification email now. Returns 502 when delivery failed."""
    missing = [
        wire
        for attr, wire in (("type", "type"), ("service_id", "serviceId"), ("customer_email", "customerEmail"))
        if not getattr(request, attr)
    ]
    if missing:
        raise MissingFieldsError(missing)

    try:
        notification_type = NotificationType(request.type.upper())
    except ValueError:
        raise ValidationError(f"Invalid notification type '{request.type}'")

    service = await db.get(Service, request.service_id)
    if not service:
        raise NotFoundError("Service", request.service_id)

    estimated_fee = request.estimated_fee
    if estimated_fee is None and service.estimated_fee is not None:
        estimated_fee = float(service.estimated_fee)
    if notification_type == NotificationType.CUSTOMER_APPROVAL_PENDING and not estimated_fee:
        raise ValidationError("An estimated fee is required for an approval request")

    sent = await notifier.send(
        NotificationRequest(
            type=notification_type,
            service_id=service.id,
            customer_email=request.customer_email,
            service_number=service.service_number,
            estimated_fee=estimated_fee,
        )
    )
    if not sent:
        raise ExternalServiceError("Email", "notification could not be delivered", code=ErrorCode.EMAIL_ERROR)

    return SendNotificationResponse(
        message="Notification sent",
        type=notification_type.value,
        service_id=service.id,
    )
