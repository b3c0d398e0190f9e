"""Dashboard summary and trend endpoints."""
from typing import Optional

from fastapi import APIRouter, Query, Request, Response

from app.api.deps import DB, Cache, CurrentUser
from app.api.response_cache import cached_response
from app.schemas.dashboard import DashboardSummary, TrendResponse
from app.services.dashboard_service import DEFAULT_RANGE, DashboardService

router = APIRouter(tags=["Dashboard"])

DASHBOARD_CACHE = "dashboard"
DASHBOARD_TTL = 60


@router.get("/summary", response_model=DashboardSummary)
async def get_summary(
    request: Request,
    response: Response,
    db: DB,
    cache: Cache,
    current_user: CurrentUser,
    range: Optional[str] = Query(DEFAULT_RANGE, description="7d, 14d, 30d or 90d"),
):
    """
    Totals, status breakdowns, daily trends and top cities for the range.
    USER accounts linked to a vendor see only that vendor's data.
    """

    async def load():
        return DashboardSummary.model_validate(await DashboardService(db).get_summary(current_user, range))

    return await cached_response(
        request, response, cache, DASHBOARD_CACHE, load, ttl=DASHBOARD_TTL, scope=str(current_user.id)
    )


@router.get("/trends", response_model=TrendResponse)
async def get_trends(
    db: DB,
    current_user: CurrentUser,
    metric: str = Query("orders", description="orders, shipments or delivered"),
    range: Optional[str] = Query(DEFAULT_RANGE),
):
    trends = await DashboardService(db).get_trends(current_user, metric, range)
    return TrendResponse.model_validate(trends)
