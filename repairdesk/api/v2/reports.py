"""Financial reports over the income/expense ledger."""

from fastapi import APIRouter, Query
from typing import Literal, Optional, Union

from repairdesk.api.deps import DbSession, CurrentUser
from repairdesk.schemas.analytics import (
    ComparisonReport,
    GeneralReport,
    MonthlyReport,
    TrendsReport,
    YearlyReport,
)
from repairdesk.services import financial_reports
from repairdesk.timeutils import utcnow

router = APIRouter()

# GeneralReport must precede TrendsReport: a general report also carries `trends`
ReportResponse = Union[MonthlyReport, YearlyReport, ComparisonReport, GeneralReport, TrendsReport]


@router.get("", response_model=ReportResponse)
async def get_report(
    db: DbSession,
    current_user: CurrentUser,
    report_type: Optional[Literal["monthly", "yearly", "comparison", "trends"]] = Query(None, alias="type"),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
):
    """
    Build a report.

    Without `type` the general report is returned: current month, current
    year and the six-month trend. `month` is 1-based.
    """
    now = utcnow()
    year = year or now.year
    month = month or now.month

    if report_type == "monthly":
        return await financial_reports.monthly_report(db, year, month)
    if report_type == "yearly":
        return await financial_reports.yearly_report(db, year)
    if report_type == "comparison":
        return await financial_reports.comparison_report(db, year)
    if report_type == "trends":
        return await financial_reports.trends_report(db, now)
    return await financial_reports.general_report(db, now)
