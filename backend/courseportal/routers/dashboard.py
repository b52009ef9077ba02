"""
Dashboard router for the course portal.

System-owner metrics: totals and trailing weekly activity.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from courseportal.core.database import get_db
from courseportal.routers.auth import get_portal_context
from courseportal.schemas.dashboard import DashboardMetrics
from courseportal.services.context import PortalContext
from courseportal.services.metrics import DashboardAggregator


router = APIRouter()


@router.get("/", response_model=DashboardMetrics)
async def get_dashboard_metrics(
    context: PortalContext = Depends(get_portal_context),
    db: Session = Depends(get_db)
) -> DashboardMetrics:
    """
    Get dashboard totals and weekly buckets. Never fails on database errors.
    """
    context.require_system_owner()
    return DashboardAggregator(db).collect()
