from fastapi import APIRouter, Query
from typing import Literal, Optional, Union

from repairdesk.api.deps import DbSession, CurrentUser
from repairdesk.schemas.analytics import (
    CustomerAnalytics,
    LoyaltyAnalysis,
    RetentionAnalysis,
    SegmentationAnalysis,
)
from repairdesk.services import customer_analytics as analytics
from repairdesk.timeutils import utcnow

router = APIRouter()


@router.get(
    "",
    response_model=Union[LoyaltyAnalysis, SegmentationAnalysis, RetentionAnalysis, CustomerAnalytics],
)
async def get_customer_analytics(
    db: DbSession,
    current_user: CurrentUser,
    analysis_type: Optional[Literal["loyalty", "segmentation", "retention"]] = Query(None, alias="type"),
):
    """Loyalty tiers, RFM segments and retention; all three when no type is given."""
    now = utcnow()
    if analysis_type is None:
        return await analytics.customer_analytics(db, now)

    services = await analytics.load_services(db)
    if analysis_type == "loyalty":
        return analytics.loyalty_analysis(services, now)
    if analysis_type == "segmentation":
        return analytics.segmentation_analysis(services, now)
    return analytics.retention_analysis(services)
