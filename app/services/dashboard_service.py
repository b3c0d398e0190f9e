"""
Dashboard aggregation over orders and shipments.

Every per-day series is pre-filled with zeros for each calendar day of the
range (UTC, ``YYYY-MM-DD`` keys) and then incremented by a single scan of
the matching rows.
"""
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, ValidationError
from app.models.order import Order
from app.models.shipment import Shipment, ShipmentStatus
from app.models.user import User, UserRole
from app.models.vendor import Vendor
from app.models.warehouse import Warehouse

logger = logging.getLogger(__name__)

RANGES = {"7d": 7, "14d": 14, "30d": 30, "90d": 90}
DEFAULT_RANGE = "30d"
TREND_METRICS = ("orders", "shipments", "delivered")
TOP_CITIES_LIMIT = 10


def parse_range(range_key: Optional[str], now: Optional[datetime] = None) -> Tuple[datetime, datetime, int]:
    """Return ``(start, end, days)``; start is midnight ``days - 1`` days ago, end is now."""
    now = now or datetime.now(timezone.utc)
    days = RANGES.get(range_key or DEFAULT_RANGE, RANGES[DEFAULT_RANGE])
    start = (now - timedelta(days=days - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, now, days


def build_empty_series(start: datetime, end: datetime) -> Dict[str, int]:
    series = {}
    day = start.date()
    while day <= end.date():
        series[day.isoformat()] = 0
        day += timedelta(days=1)
    return series


def day_key(value: datetime) -> str:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


def _bump(series: Dict[str, int], value: Optional[datetime]) -> None:
    if value is None:
        return
    key = day_key(value)
    if key in series:
        series[key] += 1


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _vendor_scope(user: User):
        """USER accounts linked to a vendor only see that vendor's data."""
        if user.role == UserRole.USER.value and user.vendor_id:
            return user.vendor_id
        return None

    def _order_filters(self, vendor_id, start: datetime, end: datetime) -> list:
        filters = [Order.created_at >= start, Order.created_at <= end]
        if vendor_id:
            filters.append(Order.vendor_id == vendor_id)
        return filters

    def _shipment_query(self, vendor_id, *columns):
        stmt = select(*columns).select_from(Shipment)
        if vendor_id:
            stmt = stmt.join(Order, Shipment.order_id == Order.id).where(Order.vendor_id == vendor_id)
        return stmt

    async def _scalar(self, stmt) -> int:
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_summary(self, user: Optional[User], range_key: Optional[str] = DEFAULT_RANGE) -> dict:
        if user is None or not user.role:
            raise ForbiddenError("Insufficient permissions")
        start, end, _ = parse_range(range_key)
        vendor_id = self._vendor_scope(user)

        # Totals (all time, scoped)
        order_total_stmt = select(func.count(Order.id))
        if vendor_id:
            order_total_stmt = order_total_stmt.where(Order.vendor_id == vendor_id)
        orders_total = await self._scalar(order_total_stmt)
        shipments_total = await self._scalar(self._shipment_query(vendor_id, func.count(Shipment.id)))
        vendors_total = await self._scalar(select(func.count(Vendor.id)))
        warehouses_total = await self._scalar(select(func.count(Warehouse.id)))

        orders_series = build_empty_series(start, end)
        shipments_series = build_empty_series(start, end)
        delivered_series = build_empty_series(start, end)

        orders_by_status: Counter = Counter()
        cities: Counter = Counter()
        revenue_total = 0.0
        order_rows = await self.db.execute(
            select(Order.created_at, Order.status, Order.total_amount, Order.delivery_city)
            .where(*self._order_filters(vendor_id, start, end))
        )
        for created_at, status, total_amount, city in order_rows:
            _bump(orders_series, created_at)
            orders_by_status[status] += 1
            cities[city or "Unknown"] += 1
            revenue_total += float(total_amount or 0)

        shipments_by_status: Counter = Counter()
        shipment_rows = await self.db.execute(
            self._shipment_query(vendor_id, Shipment.created_at, Shipment.status, Shipment.actual_delivery)
            .where(Shipment.created_at >= start, Shipment.created_at <= end)
        )
        for created_at, status, actual_delivery in shipment_rows:
            _bump(shipments_series, created_at)
            shipments_by_status[status] += 1
            if status == ShipmentStatus.DELIVERED.value:
                _bump(delivered_series, actual_delivery)

        return {
            "totals": {
                "orders_total": orders_total,
                "shipments_total": shipments_total,
                "vendors_total": vendors_total,
                "warehouses_total": warehouses_total,
                "revenue_total": round(revenue_total, 2),
            },
            "orders_by_status": dict(orders_by_status),
            "shipments_by_status": dict(shipments_by_status),
            "trends": {
                "orders_created_per_day": orders_series,
                "shipments_created_per_day": shipments_series,
                "shipments_delivered_per_day": delivered_series,
            },
            "top_cities": [
                {"city": city, "count": count}
                for city, count in cities.most_common(TOP_CITIES_LIMIT)
            ],
        }

    async def get_trends(
        self,
        user: Optional[User],
        metric: str = "orders",
        range_key: Optional[str] = DEFAULT_RANGE,
    ) -> dict:
        if user is None or not user.role:
            raise ForbiddenError("Insufficient permissions")
        if metric not in TREND_METRICS:
            raise ValidationError("Invalid metric")

        start, end, _ = parse_range(range_key)
        vendor_id = self._vendor_scope(user)
        series = build_empty_series(start, end)

        if metric == "orders":
            rows = await self.db.execute(
                select(Order.created_at).where(*self._order_filters(vendor_id, start, end))
            )
        elif metric == "shipments":
            rows = await self.db.execute(
                self._shipment_query(vendor_id, Shipment.created_at)
                .where(Shipment.created_at >= start, Shipment.created_at <= end)
            )
        else:
            rows = await self.db.execute(
                self._shipment_query(vendor_id, Shipment.actual_delivery)
                .where(
                    Shipment.status == ShipmentStatus.DELIVERED.value,
                    Shipment.actual_delivery.is_not(None),
                    Shipment.actual_delivery >= start,
                    Shipment.actual_delivery <= end,
                )
            )

        for (value,) in rows:
            _bump(series, value)

        return {"metric": metric, "range": range_key if range_key in RANGES else DEFAULT_RANGE, "series": series}
