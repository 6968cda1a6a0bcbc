from fastapi import APIRouter

from repairdesk.api.v2 import (
    auth,
    users,
    customers,
    services,
    finance,
    notifications,
    dashboard,
    reports,
    customer_analytics,
    technician_analytics,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(services.router, prefix="/services", tags=["services"])
api_router.include_router(finance.router, prefix="/finance", tags=["finance"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(customer_analytics.router, prefix="/customer-analytics", tags=["analytics"])
api_router.include_router(technician_analytics.router, prefix="/technician-analytics", tags=["analytics"])
