"""Response models for reports, dashboard and analytics views."""

from datetime import datetime
from typing import Optional

from repairdesk.schemas.base import CamelModel
from repairdesk.schemas.types import Money


# =============================================================================
# Financial reports
# =============================================================================

class PeriodTotals(CamelModel):
    total_income: float
    total_expense: float
    net_profit: float
    transaction_count: int


class ServiceIncomeRow(CamelModel):
    service_id: Optional[str] = None
    amount: float
    count: int


class TypeTotalsRow(CamelModel):
    type: str
    amount: float
    count: int


class ReportRecord(CamelModel):
    id: str
    amount: Money
    type: str
    description: Optional[str] = None
    service_id: Optional[str] = None
    recorded_at: datetime


class ReportRecords(CamelModel):
    income: list[ReportRecord]
    expense: list[ReportRecord]


class MonthlyReport(CamelModel):
    period: str
    summary: PeriodTotals
    service_analysis: list[ServiceIncomeRow]
    type_breakdown: list[TypeTotalsRow]
    records: ReportRecords


class MonthBreakdown(CamelModel):
    month: int
    income: float
    expense: float
    net: float
    transaction_count: int


class YearlyReport(CamelModel):
    year: int
    summary: PeriodTotals
    monthly_breakdown: list[MonthBreakdown]


class ChangeSet(CamelModel):
    income_change: float
    expense_change: float
    profit_change: float


class ComparisonReport(CamelModel):
    current_year: PeriodTotals
    previous_year: PeriodTotals
    changes: ChangeSet


class TrendPoint(CamelModel):
    period: str
    income: float
    expense: float
    net: float


class TrendsReport(CamelModel):
    trends: list[TrendPoint]


class GeneralReport(CamelModel):
    current_month: MonthlyReport
    current_year: YearlyReport
    trends: list[TrendPoint]


# =============================================================================
# Customer analytics
# =============================================================================

class CustomerMetrics(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: str
    service_count: int
    total_spent: float
    average_spent: float
    first_service: datetime
    last_service: datetime
    days_since_last_service: int
    device_types: list[str] = []
    brands: list[str] = []


class LoyaltyLevels(CamelModel):
    bronze: list[CustomerMetrics]
    silver: list[CustomerMetrics]
    gold: list[CustomerMetrics]
    platinum: list[CustomerMetrics]


class LoyaltyReward(CamelModel):
    level: str
    min_services: int
    reward: str
    description: str


class LoyaltySummary(CamelModel):
    total_customers: int
    bronze_count: int
    silver_count: int
    gold_count: int
    platinum_count: int


class LoyaltyAnalysis(CamelModel):
    loyalty_levels: LoyaltyLevels
    rewards: list[LoyaltyReward]
    summary: LoyaltySummary


class Segments(CamelModel):
    champions: list[CustomerMetrics]
    loyal_customers: list[CustomerMetrics]
    potential_loyalists: list[CustomerMetrics]
    new_customers: list[CustomerMetrics]
    at_risk: list[CustomerMetrics]
    lost: list[CustomerMetrics]


class SegmentSummary(CamelModel):
    total_customers: int
    champions_count: int
    loyal_customers_count: int
    potential_loyalists_count: int
    new_customers_count: int
    at_risk_count: int
    lost_count: int
    unsegmented_count: int


class SegmentationAnalysis(CamelModel):
    segments: Segments
    summary: SegmentSummary


class RetentionMonth(CamelModel):
    month: str
    new_customers: int
    returning_customers: int
    total_customers: int
    total_revenue: float
    retention_rate: float


class CustomerLifetime(CamelModel):
    customer_id: str
    lifetime: int
    service_count: int
    first_service: datetime
    last_service: datetime


class RetentionSummary(CamelModel):
    average_lifetime: int
    total_customers: int
    average_services_per_customer: float


class RetentionAnalysis(CamelModel):
    monthly_data: list[RetentionMonth]
    customer_lifetimes: list[CustomerLifetime]
    summary: RetentionSummary


class CustomerAnalytics(CamelModel):
    loyalty: LoyaltyAnalysis
    segmentation: SegmentationAnalysis
    retention: RetentionAnalysis


# =============================================================================
# Technician analytics
# =============================================================================

class TechnicianRef(CamelModel):
    id: str
    name: str
    email: str


class TechnicianPerformanceRow(CamelModel):
    technician: TechnicianRef
    service_count: int
    completed_services: int
    total_revenue: float
    average_service_days: float
    completion_rate: float
    average_revenue: float
    rank: int
    efficiency: float


class PerformanceSummary(CamelModel):
    total_technicians: int
    total_services: int
    total_revenue: float
    average_completion_rate: float


class TechnicianPerformance(CamelModel):
    technicians: list[TechnicianPerformanceRow]
    period: str
    summary: PerformanceSummary


class TechnicianEfficiencyRow(CamelModel):
    technician: TechnicianRef
    service_count: int
    revenue_per_hour: float
    services_per_day: float
    utilization_rate: float


class EfficiencySummary(CamelModel):
    average_revenue_per_hour: float
    average_services_per_day: float
    average_utilization_rate: float


class TechnicianEfficiency(CamelModel):
    efficiency: list[TechnicianEfficiencyRow]
    period: str
    summary: EfficiencySummary


class ComparisonPerformance(CamelModel):
    rank: int
    service_count: int
    completion_rate: float
    total_revenue: float
    average_revenue: float


class ComparisonEfficiency(CamelModel):
    revenue_per_hour: float
    services_per_day: float
    utilization_rate: float


class TechnicianComparisonRow(CamelModel):
    id: str
    name: str
    email: str
    performance: ComparisonPerformance
    efficiency: ComparisonEfficiency
    overall_score: float


class ComparisonMetrics(CamelModel):
    top_performer: Optional[TechnicianComparisonRow] = None
    most_efficient: Optional[TechnicianComparisonRow] = None
    highest_completion: Optional[TechnicianComparisonRow] = None


class TechnicianComparison(CamelModel):
    comparison: list[TechnicianComparisonRow]
    period: str
    metrics: ComparisonMetrics


class TechnicianAnalytics(CamelModel):
    performance: TechnicianPerformance
    efficiency: TechnicianEfficiency
    comparison: TechnicianComparison
    period: str


# =============================================================================
# Dashboard
# =============================================================================

class StatusCount(CamelModel):
    status: str
    count: int


class MonthRevenue(CamelModel):
    month: str
    revenue: float


class DashboardChanges(CamelModel):
    today_service_change: float
    revenue_change: float


class DashboardStats(CamelModel):
    today_services: int
    pending_services: int
    completed_services: int
    today_revenue: float
    services_by_status: list[StatusCount]
    monthly_revenue: list[MonthRevenue]
    changes: DashboardChanges


class Activity(CamelModel):
    id: str
    type: str
    title: str
    description: str
    time: datetime
    time_ago: str
