"""Income/expense aggregates over the financial ledger.

Ranges are half-open: [start, end).
"""

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from repairdesk.models.financial_record import FinancialRecord, RecordType
from repairdesk.schemas.analytics import (
    ChangeSet,
    ComparisonReport,
    GeneralReport,
    MonthBreakdown,
    MonthlyReport,
    PeriodTotals,
    ReportRecord,
    ReportRecords,
    ServiceIncomeRow,
    TrendPoint,
    TrendsReport,
    TypeTotalsRow,
    YearlyReport,
)
from repairdesk.timeutils import add_months, month_key, start_of_month, utcnow


def percent_change(current: float, previous: float) -> float:
    """Relative change in percent; 0 when there is no baseline."""
    if not previous:
        return 0.0
    return (current - previous) / abs(previous) * 100


def month_range(year: int, month: int) -> Tuple[datetime, datetime]:
    start = datetime(year, month, 1)
    return start, add_months(start, 1)


async def period_totals(db: AsyncSession, start: datetime, end: datetime) -> PeriodTotals:
    result = await db.execute(
        select(FinancialRecord.type, func.sum(FinancialRecord.amount), func.count(FinancialRecord.id))
        .where(FinancialRecord.recorded_at >= start, FinancialRecord.recorded_at < end)
        .group_by(FinancialRecord.type)
    )
    income = expense = 0.0
    count = 0
    for record_type, amount, rows in result.all():
        if record_type == RecordType.INCOME.value:
            income = float(amount or 0)
        elif record_type == RecordType.EXPENSE.value:
            expense = float(amount or 0)
        count += rows
    return PeriodTotals(
        total_income=income,
        total_expense=expense,
        net_profit=income - expense,
        transaction_count=count,
    )


async def monthly_report(db: AsyncSession, year: int, month: int) -> MonthlyReport:
    start, end = month_range(year, month)
    in_range = (FinancialRecord.recorded_at >= start, FinancialRecord.recorded_at < end)

    records_result = await db.execute(
        select(FinancialRecord).where(*in_range).order_by(FinancialRecord.recorded_at.desc())
    )
    records = records_result.scalars().all()

    by_service = await db.execute(
        select(FinancialRecord.service_id, func.sum(FinancialRecord.amount), func.count(FinancialRecord.id))
        .where(*in_range, FinancialRecord.type == RecordType.INCOME.value)
        .group_by(FinancialRecord.service_id)
    )
    by_type = await db.execute(
        select(FinancialRecord.type, func.sum(FinancialRecord.amount), func.count(FinancialRecord.id))
        .where(*in_range)
        .group_by(FinancialRecord.type)
    )

    income = [ReportRecord.model_validate(r) for r in records if r.type == RecordType.INCOME.value]
    expense = [ReportRecord.model_validate(r) for r in records if r.type == RecordType.EXPENSE.value]
    total_income = sum(r.amount for r in income)
    total_expense = sum(r.amount for r in expense)

    return MonthlyReport(
        period=f"{year}-{month:02d}",
        summary=PeriodTotals(
            total_income=total_income,
            total_expense=total_expense,
            net_profit=total_income - total_expense,
            transaction_count=len(income) + len(expense),
        ),
        service_analysis=[
            ServiceIncomeRow(service_id=service_id, amount=float(amount or 0), count=count)
            for service_id, amount, count in by_service.all()
        ],
        type_breakdown=[
            TypeTotalsRow(type=record_type, amount=float(amount or 0), count=count)
            for record_type, amount, count in by_type.all()
        ],
        records=ReportRecords(income=income, expense=expense),
    )


async def yearly_report(db: AsyncSession, year: int) -> YearlyReport:
    breakdown = []
    for month in range(1, 13):
        totals = await period_totals(db, *month_range(year, month))
        breakdown.append(
            MonthBreakdown(
                month=month,
                income=totals.total_income,
                expense=totals.total_expense,
                net=totals.net_profit,
                transaction_count=totals.transaction_count,
            )
        )
    summary = await period_totals(db, datetime(year, 1, 1), datetime(year + 1, 1, 1))
    return YearlyReport(year=year, summary=summary, monthly_breakdown=breakdown)


async def comparison_report(db: AsyncSession, year: int) -> ComparisonReport:
    current = await period_totals(db, datetime(year, 1, 1), datetime(year + 1, 1, 1))
    previous = await period_totals(db, datetime(year - 1, 1, 1), datetime(year, 1, 1))
    return ComparisonReport(
        current_year=current,
        previous_year=previous,
        changes=ChangeSet(
            income_change=percent_change(current.total_income, previous.total_income),
            expense_change=percent_change(current.total_expense, previous.total_expense),
            profit_change=percent_change(current.net_profit, previous.net_profit),
        ),
    )


async def trends_report(db: AsyncSession, now: Optional[datetime] = None, months: int = 6) -> TrendsReport:
    """Last `months` calendar months, oldest first, current month included."""
    current = start_of_month(now or utcnow())
    trends = []
    for offset in range(months - 1, -1, -1):
        start = add_months(current, -offset)
        totals = await period_totals(db, start, add_months(start, 1))
        trends.append(
            TrendPoint(
                period=month_key(start),
                income=totals.total_income,
                expense=totals.total_expense,
                net=totals.net_profit,
            )
        )
    return TrendsReport(trends=trends)


async def general_report(db: AsyncSession, now: Optional[datetime] = None) -> GeneralReport:
    now = now or utcnow()
    return GeneralReport(
        current_month=await monthly_report(db, now.year, now.month),
        current_year=await yearly_report(db, now.year),
        trends=(await trends_report(db, now)).trends,
    )
