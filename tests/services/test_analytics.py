"""
Tests for customer and technician analytics and the financial reports.

Customer and technician views are computed from in-memory services; the
financial reports query the SQLite test database.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from repairdesk.models.customer import Customer
from repairdesk.models.financial_record import FinancialRecord
from repairdesk.models.service import Service
from repairdesk.models.user import User
from repairdesk.services import customer_analytics as ca
from repairdesk.services import financial_reports as fr
from repairdesk.services import technician_analytics as ta

NOW = datetime(2024, 6, 15, 12, 0)


def make_services(customer: Customer, count: int, spent_each: float, last: datetime, **extra):
    """`count` services ending at `last`, one week apart, each with an income record."""
    services = []
    for index in range(count):
        created = last - timedelta(weeks=count - 1 - index)
        service = Service(
            id=f"{customer.id}-{index}",
            customer_id=customer.id,
            device_type=extra.get("device_type", "PHONE"),
            brand=extra.get("brand", "Apple"),
            model="Model",
            status=extra.get("status", "DELIVERED"),
            created_at=created,
            completed_at=extra.get("completed_at", created + timedelta(days=2)),
            technician_id=extra.get("technician_id"),
        )
        service.customer = customer
        if spent_each:
            service.financial_record = FinancialRecord(amount=Decimal(str(spent_each)), type="INCOME")
        services.append(service)
    return services


def make_customer(name: str) -> Customer:
    return Customer(id=name.lower(), name=name, phone="555", email=f"{name.lower()}@example.com")


class TestLoyalty:

    @pytest.mark.parametrize(
        "count,tier",
        [(1, "bronze"), (2, "bronze"), (3, "silver"), (5, "silver"), (6, "gold"), (10, "gold"), (11, "platinum")],
    )
    def test_loyalty_tier(self, count, tier):
        assert ca.loyalty_tier(count) == tier

    def test_loyalty_analysis_groups_customers(self):
        services = make_services(make_customer("Ann"), 1, 100, NOW) + make_services(make_customer("Bob"), 4, 100, NOW)

        result = ca.loyalty_analysis(services, NOW)

        assert result.summary.total_customers == 2
        assert result.summary.bronze_count == 1
        assert result.summary.silver_count == 1
        bob = result.loyalty_levels.silver[0]
        assert bob.name == "Bob"
        assert bob.total_spent == 400
        assert bob.average_spent == 100
        assert bob.days_since_last_service == 0

    def test_platinum_reward_matches_tier(self):
        platinum = [r for r in ca.LOYALTY_REWARDS if r.level == "Platinum"][0]
        assert ca.loyalty_tier(platinum.min_services) == "platinum"
        assert ca.loyalty_tier(platinum.min_services - 1) == "gold"


class TestSegmentation:

    def test_segment_rules(self):
        recent = NOW - timedelta(days=10)
        stale = NOW - timedelta(days=200)
        gone = NOW - timedelta(days=400)

        assert ca.segment_for(5, 5000, recent, NOW) == "champions"
        assert ca.segment_for(3, 3000, recent, NOW) == "loyal_customers"
        assert ca.segment_for(2, 1000, recent, NOW) == "potential_loyalists"
        assert ca.segment_for(1, 0, recent, NOW) == "new_customers"
        assert ca.segment_for(2, 2500, stale, NOW) == "at_risk"
        assert ca.segment_for(1, 50, gone, NOW) == "lost"
        assert ca.segment_for(2, 500, recent, NOW) is None
        assert ca.segment_for(2, 500, stale, NOW) is None

    def test_unsegmented_customers_are_counted(self):
        services = (
            make_services(make_customer("Ann"), 1, 100, NOW)
            + make_services(make_customer("Bob"), 2, 100, NOW - timedelta(days=5))
        )

        result = ca.segmentation_analysis(services, NOW)

        assert result.summary.new_customers_count == 1
        assert result.summary.unsegmented_count == 1
        assert result.summary.total_customers == 2


class TestRetention:

    def test_new_and_returning_by_month(self):
        ann = make_customer("Ann")
        services = make_services(ann, 1, 100, datetime(2024, 4, 10)) + make_services(ann, 1, 200, datetime(2024, 5, 3))
        services[1].id = "ann-second"
        services += make_services(make_customer("Bob"), 1, 50, datetime(2024, 5, 20))
        services.sort(key=lambda s: s.created_at)

        result = ca.retention_analysis(services)

        april, may = result.monthly_data
        assert april.month == "2024-04"
        assert april.new_customers == 1
        assert may.new_customers == 1
        assert may.returning_customers == 1
        assert may.total_revenue == 250
        assert may.retention_rate == 50
        assert result.summary.total_customers == 2
        assert result.summary.average_services_per_customer == 1.5

    def test_empty(self):
        result = ca.retention_analysis([])

        assert result.monthly_data == []
        assert result.summary.average_lifetime == 0
        assert result.summary.average_services_per_customer == 0


class TestTechnicianAnalytics:

    def _work(self):
        alice = User(id="t-alice", name="Alice", email="alice@example.com")
        bob = User(id="t-bob", name="Bob", email="bob@example.com")
        alice_work = ta.TechnicianWork(technician=alice, services=make_services(make_customer("Ann"), 2, 1000, NOW))
        bob_work = ta.TechnicianWork(
            technician=bob,
            services=make_services(make_customer("Cid"), 2, 0, NOW, status="REPAIRING", completed_at=None),
        )
        return [bob_work, alice_work]

    def test_period_start(self):
        assert ta.period_start("daily", NOW) == datetime(2024, 6, 15)
        assert ta.period_start("weekly", NOW) == NOW - timedelta(days=7)
        assert ta.period_start("monthly", NOW) == NOW - timedelta(days=30)
        assert ta.period_start("yearly", NOW) == NOW - timedelta(days=365)

    def test_formulas(self):
        assert ta.revenue_per_hour(2000, 2) == 500
        assert ta.revenue_per_hour(0, 0) == 0
        assert ta.utilization_rate(88) == 100
        assert ta.efficiency_score(100, 1000, 2) == pytest.approx(30 + 0.4 + 29.4)

    def test_performance_ranks_by_revenue(self):
        result = ta.performance_view(self._work(), "monthly")

        first, second = result.technicians
        assert first.technician.name == "Alice"
        assert first.rank == 1
        assert first.completion_rate == 100
        assert first.average_service_days == 2
        assert second.completion_rate == 0
        assert result.summary.total_revenue == 2000
        assert result.summary.average_completion_rate == 50

    def test_comparison_metrics(self):
        result = ta.comparison_view(self._work(), "weekly")

        assert result.period == "weekly"
        assert result.metrics.top_performer.name == "Alice"
        assert result.metrics.highest_completion.name == "Alice"
        assert result.comparison[0].overall_score >= result.comparison[1].overall_score

    def test_empty_comparison(self):
        result = ta.comparison_view([], "monthly")

        assert result.comparison == []
        assert result.metrics.top_performer is None


class TestFinancialReports:

    def test_percent_change(self):
        assert fr.percent_change(150, 100) == 50
        assert fr.percent_change(50, 100) == -50
        assert fr.percent_change(10, 0) == 0

    def test_month_range_wraps_year(self):
        start, end = fr.month_range(2024, 12)

        assert start == datetime(2024, 12, 1)
        assert end == datetime(2025, 1, 1)

    async def _seed(self, test_db):
        test_db.add_all([
            FinancialRecord(amount=Decimal("1000.00"), type="INCOME", recorded_at=datetime(2024, 5, 3)),
            FinancialRecord(amount=Decimal("300.00"), type="EXPENSE", recorded_at=datetime(2024, 5, 20)),
            FinancialRecord(amount=Decimal("500.00"), type="INCOME", recorded_at=datetime(2024, 6, 1)),
            FinancialRecord(amount=Decimal("800.00"), type="INCOME", recorded_at=datetime(2023, 6, 1)),
        ])
        await test_db.commit()

    @pytest.mark.asyncio
    async def test_monthly_report(self, test_db):
        await self._seed(test_db)

        report = await fr.monthly_report(test_db, 2024, 5)

        assert report.period == "2024-05"
        assert report.summary.total_income == 1000
        assert report.summary.total_expense == 300
        assert report.summary.net_profit == 700
        assert report.summary.transaction_count == 2
        assert len(report.records.income) == 1
        assert {row.type for row in report.type_breakdown} == {"INCOME", "EXPENSE"}

    @pytest.mark.asyncio
    async def test_yearly_report(self, test_db):
        await self._seed(test_db)

        report = await fr.yearly_report(test_db, 2024)

        assert len(report.monthly_breakdown) == 12
        assert report.monthly_breakdown[4].month == 5
        assert report.monthly_breakdown[4].net == 700
        assert report.monthly_breakdown[5].income == 500
        assert report.summary.total_income == 1500

    @pytest.mark.asyncio
    async def test_comparison_report(self, test_db):
        await self._seed(test_db)

        report = await fr.comparison_report(test_db, 2024)

        assert report.previous_year.total_income == 800
        assert report.changes.income_change == pytest.approx(87.5)

    @pytest.mark.asyncio
    async def test_trends_report(self, test_db):
        await self._seed(test_db)

        report = await fr.trends_report(test_db, NOW)

        assert [p.period for p in report.trends] == [
            "2024-01", "2024-02", "2024-03", "2024-04", "2024-05", "2024-06",
        ]
        assert report.trends[-1].income == 500
        assert report.trends[-2].net == 700
