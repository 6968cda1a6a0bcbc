"""
Service ticket endpoints.

Status changes (PUT /{id}/status, or a changed `status` in PUT /{id}) run
through ServiceWorkflow; customer emails are queued as background tasks and
sent after the response, so a delivery failure never fails the update.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import select, func, or_
from sqlalchemy.orm import selectinload
from typing import Optional
import logging
import math

from repairdesk.api.deps import DbSession, CurrentUser, NotifierDep
from repairdesk.exceptions import NotFoundError
from repairdesk.models.customer import Customer
from repairdesk.models.financial_record import FinancialRecord, RecordType
from repairdesk.models.service import Service, ServiceStatus, COMPLETED_STATUSES
from repairdesk.schemas.base import Pagination
from repairdesk.schemas.service import (
    ServiceCreate,
    ServiceUpdate,
    StatusUpdateRequest,
    ServiceDetail,
    ServiceListResponse,
    ServiceStatsResponse,
    TransitionsResponse,
)
from repairdesk.security.rbac import Permission, require_permission
from repairdesk.services.financial_reports import percent_change
from repairdesk.services.status_workflow import (
    ServiceWorkflow,
    TransitionResult,
    allowed_transitions,
    is_terminal,
    parse_status,
)
from repairdesk.timeutils import add_months, start_of_month, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

ACTIVE_STATUSES = (
    ServiceStatus.RECEIVED.value,
    ServiceStatus.DIAGNOSIS_PENDING.value,
    ServiceStatus.CUSTOMER_APPROVAL_PENDING.value,
    ServiceStatus.PARTS_PENDING.value,
    ServiceStatus.REPAIRING.value,
)
WAITING_STATUSES = (
    ServiceStatus.CUSTOMER_APPROVAL_PENDING.value,
    ServiceStatus.PARTS_PENDING.value,
)


def _queue_notification(background_tasks: BackgroundTasks, notifier, result: TransitionResult) -> None:
    if result.notification is not None:
        background_tasks.add_task(notifier.send, result.notification)


@router.get("", response_model=ServiceListResponse)
async def list_services(
    db: DbSession,
    current_user: CurrentUser,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """List services, newest first, with search, status filter and pagination."""
    query = select(Service).join(Service.customer)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Service.service_number.ilike(pattern),
                Service.brand.ilike(pattern),
                Service.model.ilike(pattern),
                Service.serial_number.ilike(pattern),
                Service.imei.ilike(pattern),
                Customer.name.ilike(pattern),
                Customer.phone.ilike(pattern),
            )
        )

    if status_filter and status_filter.lower() != "all":
        query = query.where(Service.status == parse_status(status_filter).value)

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0

    result = await db.execute(
        query.options(selectinload(Service.customer), selectinload(Service.technician))
        .order_by(Service.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return ServiceListResponse(
        services=result.scalars().all(),
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.post("", response_model=ServiceDetail, status_code=status.HTTP_201_CREATED)
async def create_service(
    service_data: ServiceCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Check in a device. The ticket starts in RECEIVED."""
    workflow = ServiceWorkflow(db)
    return await workflow.create_service(service_data.model_dump(), actor=current_user.email)


@router.get("/stats", response_model=ServiceStatsResponse)
async def service_stats(db: DbSession, current_user: CurrentUser):
    """Active/completed/waiting counts and this month's revenue vs last month."""
    now = utcnow()
    month_start = start_of_month(now)
    last_month_start = add_months(month_start, -1)

    async def count(statuses, start=None, end=None) -> int:
        query = select(func.count()).select_from(Service).where(Service.status.in_(statuses))
        if start is not None:
            query = query.where(Service.created_at >= start, Service.created_at < end)
        return await db.scalar(query) or 0

    async def income(start, end) -> float:
        total = await db.scalar(
            select(func.sum(FinancialRecord.amount)).where(
                FinancialRecord.type == RecordType.INCOME.value,
                FinancialRecord.service_id.is_not(None),
                FinancialRecord.recorded_at >= start,
                FinancialRecord.recorded_at < end,
            )
        )
        return float(total or 0)

    active = await count(ACTIVE_STATUSES)
    completed = await count(COMPLETED_STATUSES)
    waiting = await count(WAITING_STATUSES)
    revenue = await income(month_start, add_months(month_start, 1))

    last_active = await count(ACTIVE_STATUSES, last_month_start, month_start)
    last_completed = await count(COMPLETED_STATUSES, last_month_start, month_start)
    last_waiting = await count(WAITING_STATUSES, last_month_start, month_start)
    last_revenue = await income(last_month_start, month_start)

    return ServiceStatsResponse(
        active_services=active,
        completed_services=completed,
        pending_services=waiting,
        monthly_revenue=revenue,
        active_change=percent_change(active, last_active),
        completed_change=percent_change(completed, last_completed),
        pending_change=percent_change(waiting, last_waiting),
        revenue_change=percent_change(revenue, last_revenue),
    )


@router.get("/{service_id}", response_model=ServiceDetail)
async def get_service(
    service_id: str,
    db: DbSession,
    current_user: CurrentUser,
):
    """Get a service with customer, technician, income record and history."""
    return await ServiceWorkflow(db).get_service(service_id)


@router.get("/{service_id}/transitions", response_model=TransitionsResponse)
async def get_transitions(
    service_id: str,
    db: DbSession,
    current_user: CurrentUser,
):
    """Statuses the service may move to next."""
    workflow = ServiceWorkflow(db)
    service = await workflow.get_service(service_id)
    return TransitionsResponse(
        status=service.status,
        allowed=allowed_transitions(service.status),
        terminal=is_terminal(service.status),
        enforced=workflow.enforce,
    )


@router.put("/{service_id}", response_model=ServiceDetail)
async def update_service(
    service_id: str,
    service_data: ServiceUpdate,
    background_tasks: BackgroundTasks,
    db: DbSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
):
    """Edit service fields; a changed status runs the status workflow."""
    result = await ServiceWorkflow(db).update_service(
        service_id,
        service_data.model_dump(exclude_unset=True),
        actor=current_user.email,
    )
    _queue_notification(background_tasks, notifier, result)
    return result.service


@router.put("/{service_id}/status", response_model=ServiceDetail)
async def update_service_status(
    service_id: str,
    status_data: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    db: DbSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
):
    """Move a service to a new status."""
    result = await ServiceWorkflow(db).update_status(
        service_id,
        status_data.status,
        actor=current_user.email,
        notes=status_data.notes,
        technician_id=status_data.technician_id,
        actual_fee=status_data.actual_fee,
    )
    _queue_notification(background_tasks, notifier, result)
    return result.service


@router.delete(
    "/{service_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Permission.DELETE_SERVICES))],
)
async def delete_service(
    service_id: str,
    db: DbSession,
    current_user: CurrentUser,
):
    """Delete a service and its history (admin only)."""
    service = await db.get(Service, service_id)
    if not service:
        raise NotFoundError("Service", service_id)

    await db.delete(service)
    await db.commit()
    logger.info(f"Service {service.service_number} deleted", extra={"actor": current_user.email})
