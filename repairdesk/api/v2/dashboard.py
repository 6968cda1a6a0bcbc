from fastapi import APIRouter
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload
from datetime import datetime, timedelta

from repairdesk.api.deps import DbSession, CurrentUser
from repairdesk.models.customer import Customer
from repairdesk.models.financial_record import FinancialRecord, RecordType
from repairdesk.models.service import Service, COMPLETED_STATUSES
from repairdesk.schemas.analytics import (
    Activity,
    DashboardChanges,
    DashboardStats,
    MonthRevenue,
    StatusCount,
)
from repairdesk.services.financial_reports import percent_change
from repairdesk.api.v2.services import ACTIVE_STATUSES
from repairdesk.timeutils import add_months, month_key, start_of_day, start_of_month, utcnow

router = APIRouter()

ACTIVITY_LIMIT = 6


def time_ago(moment: datetime, now: datetime) -> str:
    """Humanised age of an event."""
    minutes = int((now - moment).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    if days < 7:
        return f"{days} day{'s' if days != 1 else ''} ago"
    return moment.strftime("%Y-%m-%d")


async def _income_between(db, start: datetime, end: datetime) -> float:
    total = await db.scalar(
        select(func.sum(FinancialRecord.amount)).where(
            FinancialRecord.type == RecordType.INCOME.value,
            FinancialRecord.recorded_at >= start,
            FinancialRecord.recorded_at < end,
        )
    )
    return float(total or 0)


async def _services_created_between(db, start: datetime, end: datetime) -> int:
    count = await db.scalar(
        select(func.count()).select_from(Service).where(
            Service.created_at >= start, Service.created_at < end
        )
    )
    return count or 0


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    db: DbSession,
    current_user: CurrentUser,
):
    """Today's intake and revenue, workload by status and six months of revenue."""
    now = utcnow()
    today = start_of_day(now)
    tomorrow = today + timedelta(days=1)
    yesterday = today - timedelta(days=1)

    today_services = await _services_created_between(db, today, tomorrow)
    yesterday_services = await _services_created_between(db, yesterday, today)

    pending = await db.scalar(
        select(func.count()).select_from(Service).where(Service.status.in_(ACTIVE_STATUSES))
    ) or 0
    completed = await db.scalar(
        select(func.count()).select_from(Service).where(Service.status.in_(COMPLETED_STATUSES))
    ) or 0

    today_revenue = await _income_between(db, today, tomorrow)
    yesterday_revenue = await _income_between(db, yesterday, today)

    by_status = await db.execute(
        select(Service.status, func.count()).group_by(Service.status).order_by(Service.status)
    )

    current_month = start_of_month(now)
    monthly = []
    for offset in range(5, -1, -1):
        start = add_months(current_month, -offset)
        monthly.append(
            MonthRevenue(
                month=month_key(start),
                revenue=await _income_between(db, start, add_months(start, 1)),
            )
        )

    return DashboardStats(
        today_services=today_services,
        pending_services=pending,
        completed_services=completed,
        today_revenue=today_revenue,
        services_by_status=[StatusCount(status=s, count=c) for s, c in by_status.all()],
        monthly_revenue=monthly,
        changes=DashboardChanges(
            today_service_change=percent_change(today_services, yesterday_services),
            revenue_change=percent_change(today_revenue, yesterday_revenue),
        ),
    )


@router.get("/activities", response_model=list[Activity])
async def get_recent_activities(
    db: DbSession,
    current_user: CurrentUser,
):
    """Most recent intake, completion and new-customer events."""
    now = utcnow()
    activities = []

    services = await db.execute(
        select(Service)
        .options(selectinload(Service.customer))
        .order_by(Service.created_at.desc())
        .limit(5)
    )
    for service in services.scalars().all():
        device = f"{service.brand} {service.model}"
        activities.append(
            Activity(
                id=f"service-{service.id}",
                type="SERVICE_CREATED",
                title="New service record created",
                description=f"{service.service_number} - {device}",
                time=service.created_at,
                time_ago=time_ago(service.created_at, now),
            )
        )
        if service.status in COMPLETED_STATUSES and service.completed_at:
            activities.append(
                Activity(
                    id=f"service-completed-{service.id}",
                    type="SERVICE_COMPLETED",
                    title="Service completed",
                    description=f"{service.service_number} - {device}",
                    time=service.completed_at,
                    time_ago=time_ago(service.completed_at, now),
                )
            )

    customers = await db.execute(select(Customer).order_by(Customer.created_at.desc()).limit(3))
    for customer in customers.scalars().all():
        activities.append(
            Activity(
                id=f"customer-{customer.id}",
                type="CUSTOMER_ADDED",
                title="New customer added",
                description=customer.name,
                time=customer.created_at,
                time_ago=time_ago(customer.created_at, now),
            )
        )

    activities.sort(key=lambda a: a.time, reverse=True)
    return activities[:ACTIVITY_LIMIT]
