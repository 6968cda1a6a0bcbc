"""Technician performance, efficiency and comparison scores.

Work hours are not tracked, so effort is estimated at two hours per service
against a capacity of 8 hours x 22 working days.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from repairdesk.models.service import COMPLETED_STATUSES, Service
from repairdesk.models.user import User
from repairdesk.schemas.analytics import (
    ComparisonEfficiency,
    ComparisonMetrics,
    ComparisonPerformance,
    EfficiencySummary,
    PerformanceSummary,
    TechnicianAnalytics,
    TechnicianComparison,
    TechnicianComparisonRow,
    TechnicianEfficiency,
    TechnicianEfficiencyRow,
    TechnicianPerformance,
    TechnicianPerformanceRow,
    TechnicianRef,
)
from repairdesk.services.customer_analytics import service_income
from repairdesk.timeutils import start_of_day, utcnow

HOURS_PER_SERVICE = 2
MONTHLY_CAPACITY_HOURS = 8 * 22

PERIODS = ("daily", "weekly", "monthly", "yearly")


def period_start(period: str, now: datetime) -> datetime:
    if period == "daily":
        return start_of_day(now)
    if period == "weekly":
        return now - timedelta(days=7)
    if period == "yearly":
        return now - timedelta(days=365)
    return now - timedelta(days=30)


@dataclass
class TechnicianWork:
    technician: User
    services: List[Service] = field(default_factory=list)

    @property
    def ref(self) -> TechnicianRef:
        return TechnicianRef(id=self.technician.id, name=self.technician.name, email=self.technician.email)

    @property
    def service_count(self) -> int:
        return len(self.services)

    @property
    def completed(self) -> int:
        return sum(1 for s in self.services if s.status in COMPLETED_STATUSES)

    @property
    def revenue(self) -> float:
        return sum(service_income(s) for s in self.services)

    @property
    def average_service_days(self) -> float:
        durations = [
            (s.completed_at - s.created_at).total_seconds() / 86400
            for s in self.services
            if s.completed_at and s.created_at
        ]
        return sum(durations) / len(durations) if durations else 0.0

    @property
    def completion_rate(self) -> float:
        return self.completed / self.service_count * 100 if self.service_count else 0.0

    @property
    def average_revenue(self) -> float:
        return self.revenue / self.service_count if self.service_count else 0.0


def efficiency_score(completion_rate: float, average_revenue: float, average_service_days: float) -> float:
    """30% completion, 40% revenue (capped at 100), 30% speed."""
    revenue_score = min(average_revenue / 1000, 100)
    speed_score = max(0.0, 100 - average_service_days) if average_service_days > 0 else 0.0
    return completion_rate * 0.3 + revenue_score * 0.4 + speed_score * 0.3


def revenue_per_hour(revenue: float, service_count: int) -> float:
    hours = service_count * HOURS_PER_SERVICE
    return revenue / hours if hours else 0.0


def services_per_day(services: List[Service]) -> float:
    days = {s.created_at.date() for s in services}
    return len(services) / len(days) if days else 0.0


def utilization_rate(service_count: int) -> float:
    return service_count * HOURS_PER_SERVICE / MONTHLY_CAPACITY_HOURS * 100


def overall_score(performance: float, efficiency: ComparisonEfficiency) -> float:
    efficiency_points = (
        efficiency.revenue_per_hour / 1000 * 50
        + efficiency.utilization_rate * 0.5
        + efficiency.services_per_day * 10
    )
    return (performance + efficiency_points) / 2


async def load_work(
    db: AsyncSession,
    period: str,
    technician_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[TechnicianWork]:
    """Assigned services created within the period, grouped per technician."""
    now = now or utcnow()
    query = (
        select(Service)
        .where(Service.technician_id.is_not(None), Service.created_at >= period_start(period, now))
        .options(selectinload(Service.technician), selectinload(Service.financial_record))
        .order_by(Service.created_at.desc())
    )
    if technician_id:
        query = query.where(Service.technician_id == technician_id)
    result = await db.execute(query)

    work: Dict[str, TechnicianWork] = {}
    for service in result.scalars().all():
        entry = work.get(service.technician_id)
        if entry is None:
            entry = work[service.technician_id] = TechnicianWork(technician=service.technician)
        entry.services.append(service)
    return list(work.values())


def performance_view(work: List[TechnicianWork], period: str) -> TechnicianPerformance:
    ranked = sorted(work, key=lambda w: (-w.revenue, -w.completed))
    rows = [
        TechnicianPerformanceRow(
            technician=w.ref,
            service_count=w.service_count,
            completed_services=w.completed,
            total_revenue=w.revenue,
            average_service_days=w.average_service_days,
            completion_rate=w.completion_rate,
            average_revenue=w.average_revenue,
            rank=index + 1,
            efficiency=efficiency_score(w.completion_rate, w.average_revenue, w.average_service_days),
        )
        for index, w in enumerate(ranked)
    ]
    return TechnicianPerformance(
        technicians=rows,
        period=period,
        summary=PerformanceSummary(
            total_technicians=len(rows),
            total_services=sum(w.service_count for w in work),
            total_revenue=sum(w.revenue for w in work),
            average_completion_rate=sum(r.completion_rate for r in rows) / len(rows) if rows else 0.0,
        ),
    )


def efficiency_view(work: List[TechnicianWork], period: str) -> TechnicianEfficiency:
    rows = [
        TechnicianEfficiencyRow(
            technician=w.ref,
            service_count=w.service_count,
            revenue_per_hour=revenue_per_hour(w.revenue, w.service_count),
            services_per_day=services_per_day(w.services),
            utilization_rate=utilization_rate(w.service_count),
        )
        for w in work
    ]
    count = len(rows)
    return TechnicianEfficiency(
        efficiency=rows,
        period=period,
        summary=EfficiencySummary(
            average_revenue_per_hour=sum(r.revenue_per_hour for r in rows) / count if count else 0.0,
            average_services_per_day=sum(r.services_per_day for r in rows) / count if count else 0.0,
            average_utilization_rate=sum(r.utilization_rate for r in rows) / count if count else 0.0,
        ),
    )


def comparison_view(work: List[TechnicianWork], period: str) -> TechnicianComparison:
    performance = performance_view(work, period)
    efficiency = {row.technician.id: row for row in efficiency_view(work, period).efficiency}

    rows = []
    for tech in performance.technicians:
        eff = efficiency[tech.technician.id]
        comparison_efficiency = ComparisonEfficiency(
            revenue_per_hour=eff.revenue_per_hour,
            services_per_day=eff.services_per_day,
            utilization_rate=eff.utilization_rate,
        )
        rows.append(
            TechnicianComparisonRow(
                id=tech.technician.id,
                name=tech.technician.name,
                email=tech.technician.email,
                performance=ComparisonPerformance(
                    rank=tech.rank,
                    service_count=tech.service_count,
                    completion_rate=tech.completion_rate,
                    total_revenue=tech.total_revenue,
                    average_revenue=tech.average_revenue,
                ),
                efficiency=comparison_efficiency,
                overall_score=overall_score(tech.efficiency, comparison_efficiency),
            )
        )
    rows.sort(key=lambda r: r.overall_score, reverse=True)

    metrics = ComparisonMetrics()
    if rows:
        metrics = ComparisonMetrics(
            top_performer=rows[0],
            most_efficient=max(rows, key=lambda r: r.efficiency.revenue_per_hour),
            highest_completion=max(rows, key=lambda r: r.performance.completion_rate),
        )
    return TechnicianComparison(comparison=rows, period=period, metrics=metrics)


async def technician_analytics(
    db: AsyncSession, period: str, now: Optional[datetime] = None
) -> TechnicianAnalytics:
    work = await load_work(db, period, now=now)
    return TechnicianAnalytics(
        performance=performance_view(work, period),
        efficiency=efficiency_view(work, period),
        comparison=comparison_view(work, period),
        period=period,
    )
