"""Customer loyalty, RFM segmentation and retention analysis.

All three views are computed in memory from the full service list with each
service's income record; shops of this size have at most a few thousand
tickets.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from repairdesk.models.customer import Customer
from repairdesk.models.financial_record import RecordType
from repairdesk.models.service import Service
from repairdesk.schemas.analytics import (
    CustomerAnalytics,
    CustomerLifetime,
    CustomerMetrics,
    LoyaltyAnalysis,
    LoyaltyLevels,
    LoyaltyReward,
    LoyaltySummary,
    RetentionAnalysis,
    RetentionMonth,
    RetentionSummary,
    SegmentSummary,
    SegmentationAnalysis,
    Segments,
)
from repairdesk.timeutils import month_key, utcnow

LOYALTY_REWARDS = [
    LoyaltyReward(level="Bronze", min_services=1, reward="5% discount", description="After the first service"),
    LoyaltyReward(level="Silver", min_services=3, reward="10% discount", description="After the 3rd service"),
    LoyaltyReward(level="Gold", min_services=6, reward="15% discount + free check-up", description="After the 6th service"),
    LoyaltyReward(level="Platinum", min_services=11, reward="20% discount + priority service", description="After the 10th service"),
]

RECENT_WINDOW = timedelta(days=90)
LOST_WINDOW = timedelta(days=365)


def service_income(service: Service) -> float:
    record = service.financial_record
    if record is not None and record.type == RecordType.INCOME.value:
        return float(record.amount)
    return 0.0


@dataclass
class CustomerActivity:
    customer: Customer
    services: List[Service] = field(default_factory=list)

    @property
    def service_count(self) -> int:
        return len(self.services)

    @property
    def total_spent(self) -> float:
        return sum(service_income(s) for s in self.services)

    @property
    def first_service(self) -> datetime:
        return min(s.created_at for s in self.services)

    @property
    def last_service(self) -> datetime:
        return max(s.created_at for s in self.services)

    def metrics(self, now: datetime) -> CustomerMetrics:
        total = self.total_spent
        return CustomerMetrics(
            id=self.customer.id,
            name=self.customer.name,
            email=self.customer.email,
            phone=self.customer.phone,
            service_count=self.service_count,
            total_spent=total,
            average_spent=total / self.service_count,
            first_service=self.first_service,
            last_service=self.last_service,
            days_since_last_service=(now - self.last_service).days,
            device_types=sorted({s.device_type for s in self.services}),
            brands=sorted({s.brand for s in self.services}),
        )


async def load_services(db: AsyncSession) -> List[Service]:
    """All services, oldest first, with customer and income record."""
    result = await db.execute(
        select(Service)
        .options(selectinload(Service.customer), selectinload(Service.financial_record))
        .order_by(Service.created_at.asc())
    )
    return list(result.scalars().all())


def group_by_customer(services: List[Service]) -> List[CustomerActivity]:
    activities: "OrderedDict[str, CustomerActivity]" = OrderedDict()
    for service in services:
        activity = activities.get(service.customer_id)
        if activity is None:
            activity = activities[service.customer_id] = CustomerActivity(customer=service.customer)
        activity.services.append(service)
    return list(activities.values())


def loyalty_tier(service_count: int) -> str:
    if service_count <= 2:
        return "bronze"
    if service_count <= 5:
        return "silver"
    if service_count <= 10:
        return "gold"
    return "platinum"


def segment_for(frequency: int, monetary: float, last_service: datetime, now: datetime) -> Optional[str]:
    """RFM bucket, or None when the customer fits no segment."""
    recent = last_service > now - RECENT_WINDOW
    within_year = last_service > now - LOST_WINDOW

    if recent:
        if frequency >= 5 and monetary >= 5000:
            return "champions"
        if frequency >= 3 and monetary >= 3000:
            return "loyal_customers"
        if frequency >= 2 and monetary >= 1000:
            return "potential_loyalists"
        if frequency == 1:
            return "new_customers"
        return None
    if monetary >= 2000 and within_year:
        return "at_risk"
    if not within_year:
        return "lost"
    return None


def loyalty_analysis(services: List[Service], now: Optional[datetime] = None) -> LoyaltyAnalysis:
    now = now or utcnow()
    levels = {"bronze": [], "silver": [], "gold": [], "platinum": []}
    activities = group_by_customer(services)
    for activity in activities:
        levels[loyalty_tier(activity.service_count)].append(activity.metrics(now))

    return LoyaltyAnalysis(
        loyalty_levels=LoyaltyLevels(**levels),
        rewards=LOYALTY_REWARDS,
        summary=LoyaltySummary(
            total_customers=len(activities),
            bronze_count=len(levels["bronze"]),
            silver_count=len(levels["silver"]),
            gold_count=len(levels["gold"]),
            platinum_count=len(levels["platinum"]),
        ),
    )


def segmentation_analysis(services: List[Service], now: Optional[datetime] = None) -> SegmentationAnalysis:
    now = now or utcnow()
    segments = {
        "champions": [],
        "loyal_customers": [],
        "potential_loyalists": [],
        "new_customers": [],
        "at_risk": [],
        "lost": [],
    }
    unsegmented = 0
    activities = group_by_customer(services)
    for activity in activities:
        segment = segment_for(activity.service_count, activity.total_spent, activity.last_service, now)
        if segment is None:
            unsegmented += 1
            continue
        segments[segment].append(activity.metrics(now))

    return SegmentationAnalysis(
        segments=Segments(**segments),
        summary=SegmentSummary(
            total_customers=len(activities),
            champions_count=len(segments["champions"]),
            loyal_customers_count=len(segments["loyal_customers"]),
            potential_loyalists_count=len(segments["potential_loyalists"]),
            new_customers_count=len(segments["new_customers"]),
            at_risk_count=len(segments["at_risk"]),
            lost_count=len(segments["lost"]),
            unsegmented_count=unsegmented,
        ),
    )


def retention_analysis(services: List[Service]) -> RetentionAnalysis:
    """Monthly new vs returning customers. `services` must be oldest first."""
    seen = set()
    months: "OrderedDict[str, dict]" = OrderedDict()

    for service in services:
        key = month_key(service.created_at)
        bucket = months.setdefault(
            key, {"new": 0, "returning": 0, "customers": set(), "revenue": 0.0}
        )
        bucket["customers"].add(service.customer_id)
        bucket["revenue"] += service_income(service)
        if service.customer_id in seen:
            bucket["returning"] += 1
        else:
            seen.add(service.customer_id)
            bucket["new"] += 1

    monthly = []
    for key in sorted(months):
        bucket = months[key]
        unique = len(bucket["customers"])
        monthly.append(
            RetentionMonth(
                month=key,
                new_customers=bucket["new"],
                returning_customers=bucket["returning"],
                total_customers=unique,
                total_revenue=bucket["revenue"],
                retention_rate=bucket["returning"] / unique * 100 if unique else 0.0,
            )
        )

    lifetimes = [
        CustomerLifetime(
            customer_id=activity.customer.id,
            lifetime=(activity.last_service - activity.first_service).days,
            service_count=activity.service_count,
            first_service=activity.first_service,
            last_service=activity.last_service,
        )
        for activity in group_by_customer(services)
    ]

    customer_count = len(lifetimes)
    return RetentionAnalysis(
        monthly_data=monthly,
        customer_lifetimes=lifetimes,
        summary=RetentionSummary(
            average_lifetime=round(sum(entry.lifetime for entry in lifetimes) / customer_count) if customer_count else 0,
            total_customers=customer_count,
            average_services_per_customer=len(services) / customer_count if customer_count else 0.0,
        ),
    )


async def customer_analytics(db: AsyncSession, now: Optional[datetime] = None) -> CustomerAnalytics:
    services = await load_services(db)
    return CustomerAnalytics(
        loyalty=loyalty_analysis(services, now),
        segmentation=segmentation_analysis(services, now),
        retention=retention_analysis(services),
    )
