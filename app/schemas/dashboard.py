from typing import Dict, List

from app.schemas.base import BaseResponseSchema


class DashboardTotals(BaseResponseSchema):
    orders_total: int
    shipments_total: int
    vendors_total: int
    warehouses_total: int
    revenue_total: float


class DashboardTrends(BaseResponseSchema):
    orders_created_per_day: Dict[str, int]
    shipments_created_per_day: Dict[str, int]
    shipments_delivered_per_day: Dict[str, int]


class CityCount(BaseResponseSchema):
    city: str
    count: int


class DashboardSummary(BaseResponseSchema):
    totals: DashboardTotals
    orders_by_status: Dict[str, int]
    shipments_by_status: Dict[str, int]
    trends: DashboardTrends
    top_cities: List[CityCount]


class TrendResponse(BaseResponseSchema):
    metric: str
    range: str
    series: Dict[str, int]
