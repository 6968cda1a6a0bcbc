from fastapi import APIRouter, Query
from typing import Literal, Optional, Union

from repairdesk.api.deps import DbSession, CurrentUser
from repairdesk.schemas.analytics import (
    TechnicianAnalytics,
    TechnicianComparison,
    TechnicianEfficiency,
    TechnicianPerformance,
)
from repairdesk.services import technician_analytics as analytics
from repairdesk.timeutils import utcnow

router = APIRouter()


@router.get(
    "",
    response_model=Union[TechnicianPerformance, TechnicianEfficiency, TechnicianComparison, TechnicianAnalytics],
)
async def get_technician_analytics(
    db: DbSession,
    current_user: CurrentUser,
    analysis_type: Optional[Literal["performance", "efficiency", "comparison"]] = Query(None, alias="type"),
    technician_id: Optional[str] = Query(None, alias="technicianId"),
    period: Literal["daily", "weekly", "monthly", "yearly"] = "monthly",
):
    """
    Per-technician scores for services created within the period.

    `technicianId` narrows performance and efficiency to one technician;
    the comparison always covers everyone.
    """
    now = utcnow()
    if analysis_type is None:
        return await analytics.technician_analytics(db, period, now)

    if analysis_type == "comparison":
        work = await analytics.load_work(db, period, now=now)
        return analytics.comparison_view(work, period)

    work = await analytics.load_work(db, period, technician_id, now)
    if analysis_type == "performance":
        return analytics.performance_view(work, period)
    return analytics.efficiency_view(work, period)
