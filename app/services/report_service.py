"""
CSV report generation.

Each report type is a SELECT over the store that is paged through
``page_size`` rows at a time and written to disk one page per thread
hand-off, so memory stays flat and the event loop is not blocked by file
I/O. Generation runs inside the report worker, never in a request handler.
"""
import asyncio
import os
import time
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ForbiddenError, ValidationError
from app.core.permissions import STAFF_ROLES, has_role
from app.models.order import Order
from app.models.shipment import Shipment, ShipmentStatus
from app.models.user import User
from app.models.warehouse import Warehouse
from app.schemas.report import ReportFilters, ReportType

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Awaitable[Any]]

REPORT_HEADERS: Dict[ReportType, List[str]] = {
    ReportType.SHIPMENTS_STATUS: [
        "trackingNumber", "orderNumber", "vendorId", "warehouse", "status", "carrier",
        "estimatedDelivery", "actualDelivery", "deliveryCity", "createdAt", "updatedAt",
    ],
    ReportType.ORDERS_SUMMARY: [
        "orderNumber", "vendorId", "userId", "status", "deliveryType", "deliveryCity",
        "totalAmount", "createdAt", "updatedAt",
    ],
    ReportType.COD_RECONCILIATION: [
        "orderNumber", "trackingNumber", "vendorId", "amountToBeCollected", "delivered",
        "actualDelivery", "notes",
    ],
    ReportType.WAREHOUSE_UTILIZATION: ["warehouse", "date", "inboundCount", "outboundCount"],
    ReportType.USER_ACTIVITY: ["userId", "email", "role", "createdAt", "updatedAt"],
}


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def csv_escape(value: Any) -> str:
    """Quote a field if it contains a quote, comma, CR or LF; embedded quotes are doubled."""
    text = format_value(value)
    if any(ch in text for ch in ('"', ",", "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def csv_line(values: Iterable[Any]) -> str:
    return ",".join(csv_escape(v) for v in values) + "\n"


class ReportService:
    def __init__(
        self,
        db: AsyncSession,
        reports_dir: Optional[str] = None,
        page_size: Optional[int] = None,
    ):
        self.db = db
        self.reports_dir = Path(reports_dir or settings.REPORTS_DIR).resolve()
        self.page_size = page_size or settings.REPORT_PAGE_SIZE

    @staticmethod
    def ensure_can_export(requester: Dict[str, Any]) -> None:
        if not requester or not has_role(requester.get("role", ""), *STAFF_ROLES):
            raise ForbiddenError("Insufficient permissions for report export")

    async def generate(
        self,
        report_type: str,
        requester: Dict[str, Any],
        filters: Optional[Dict[str, Any]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """
        Write the CSV for ``report_type`` and return ``{filePath, fileName, rows}``.

        Raises:
            ForbiddenError: requester is not a manager or admin
            ValidationError: unknown report type
        """
        self.ensure_can_export(requester)
        try:
            kind = ReportType(report_type)
        except ValueError:
            raise ValidationError(f"Unknown report type: {report_type}")

        parsed = ReportFilters.model_validate(filters or {})
        builders = {
            ReportType.SHIPMENTS_STATUS: self._shipments_status,
            ReportType.ORDERS_SUMMARY: self._orders_summary,
            ReportType.COD_RECONCILIATION: self._cod_reconciliation,
            ReportType.WAREHOUSE_UTILIZATION: self._warehouse_utilization,
            ReportType.USER_ACTIVITY: self._user_activity,
        }
        rows = builders[kind](parsed, progress)
        return await self._write(kind, rows)

    async def _write(self, kind: ReportType, rows: AsyncIterator[Sequence[Any]]) -> Dict[str, Any]:
        os.makedirs(self.reports_dir, exist_ok=True)
        file_name = f"{kind.value.lower()}_{int(time.time() * 1000)}.csv"
        file_path = self.reports_dir / file_name

        # File I/O runs in a thread, one page of lines at a time
        count = 0
        fh = await asyncio.to_thread(open, file_path, "w", encoding="utf-8", newline="")
        try:
            buffer = [csv_line(REPORT_HEADERS[kind])]
            async for row in rows:
                buffer.append(csv_line(row))
                count += 1
                if len(buffer) >= self.page_size:
                    await asyncio.to_thread(fh.write, "".join(buffer))
                    buffer = []
            if buffer:
                await asyncio.to_thread(fh.write, "".join(buffer))
        finally:
            await asyncio.to_thread(fh.close)

        logger.info(f"Report {file_name} written with {count} rows")
        return {"filePath": str(file_path), "fileName": file_name, "rows": count}

    async def _paged(self, stmt, progress: Optional[ProgressCallback] = None) -> AsyncIterator[Sequence[Any]]:
        """Yield result rows ``page_size`` at a time using offset paging."""
        total = (await self.db.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        )).scalar() or 0

        offset = 0
        while True:
            result = await self.db.execute(stmt.offset(offset).limit(self.page_size))
            page = result.all()
            if not page:
                break
            for row in page:
                yield tuple(row)
            offset += len(page)
            if progress is not None and total:
                await progress(min(99, int(offset * 100 / total)))
            if len(page) < self.page_size:
                break

    def _shipments_status(self, f: ReportFilters, progress) -> AsyncIterator[Sequence[Any]]:
        stmt = (
            select(
                Shipment.tracking_number,
                Order.order_number,
                Order.vendor_id,
                Warehouse.name,
                Shipment.status,
                Shipment.carrier,
                Shipment.estimated_delivery,
                Shipment.actual_delivery,
                Order.delivery_city,
                Shipment.created_at,
                Shipment.updated_at,
            )
            .select_from(Shipment)
            .outerjoin(Order, Shipment.order_id == Order.id)
            .outerjoin(Warehouse, Shipment.warehouse_id == Warehouse.id)
            .order_by(Shipment.created_at.desc(), Shipment.id)
        )
        if f.status:
            stmt = stmt.where(Shipment.status.in_(f.status))
        if f.warehouse_ids:
            stmt = stmt.where(Shipment.warehouse_id.in_(f.warehouse_ids))
        if f.vendor_ids:
            stmt = stmt.where(Order.vendor_id.in_(f.vendor_ids))
        if f.date_from:
            stmt = stmt.where(Shipment.created_at >= f.date_from)
        if f.date_to:
            stmt = stmt.where(Shipment.created_at <= f.date_to)
        return self._paged(stmt, progress)

    def _orders_summary(self, f: ReportFilters, progress) -> AsyncIterator[Sequence[Any]]:
        stmt = select(
            Order.order_number,
            Order.vendor_id,
            Order.user_id,
            Order.status,
            Order.delivery_type,
            Order.delivery_city,
            Order.total_amount,
            Order.created_at,
            Order.updated_at,
        ).order_by(Order.created_at.desc(), Order.id)
        if f.status:
            stmt = stmt.where(Order.status.in_(f.status))
        if f.vendor_ids:
            stmt = stmt.where(Order.vendor_id.in_(f.vendor_ids))
        if f.cities:
            stmt = stmt.where(Order.delivery_city.in_(f.cities))
        if f.delivery_types:
            stmt = stmt.where(Order.delivery_type.in_(f.delivery_types))
        if f.date_from:
            stmt = stmt.where(Order.created_at >= f.date_from)
        if f.date_to:
            stmt = stmt.where(Order.created_at <= f.date_to)
        return self._paged(stmt, progress)

    async def _cod_reconciliation(self, f: ReportFilters, progress) -> AsyncIterator[Sequence[Any]]:
        stmt = (
            select(
                Order.order_number,
                Shipment.tracking_number,
                Order.vendor_id,
                Order.amount_to_be_collected,
                Shipment.status,
                Shipment.actual_delivery,
                Shipment.notes,
            )
            .select_from(Shipment)
            .outerjoin(Order, Shipment.order_id == Order.id)
            .order_by(Shipment.actual_delivery.desc(), Shipment.id)
        )
        if f.status:
            stmt = stmt.where(Shipment.status.in_(f.status))
        if f.vendor_ids:
            stmt = stmt.where(Order.vendor_id.in_(f.vendor_ids))
        if f.date_from:
            stmt = stmt.where(Shipment.actual_delivery >= f.date_from)
        if f.date_to:
            stmt = stmt.where(Shipment.actual_delivery <= f.date_to)

        async for order_number, tracking, vendor_id, amount, status, delivered_at, notes in self._paged(stmt, progress):
            delivered = "YES" if status == ShipmentStatus.DELIVERED.value else "NO"
            yield (order_number, tracking, vendor_id, amount, delivered, delivered_at, notes)

    async def _warehouse_utilization(self, f: ReportFilters, progress) -> AsyncIterator[Sequence[Any]]:
        """
        One row per warehouse per day. Rows arrive sorted by warehouse then
        creation time, so each (warehouse, day) group is contiguous and is
        emitted as soon as the next group starts.

        inboundCount: shipments created that day.
        outboundCount: those that have since left PREPARING.
        """
        stmt = (
            select(Shipment.warehouse_id, Warehouse.name, Shipment.created_at, Shipment.status)
            .select_from(Shipment)
            .outerjoin(Warehouse, Shipment.warehouse_id == Warehouse.id)
            .order_by(Warehouse.name, Shipment.warehouse_id, Shipment.created_at, Shipment.id)
        )
        if f.warehouse_ids:
            stmt = stmt.where(Shipment.warehouse_id.in_(f.warehouse_ids))
        if f.date_from:
            stmt = stmt.where(Shipment.created_at >= f.date_from)
        if f.date_to:
            stmt = stmt.where(Shipment.created_at <= f.date_to)

        current_key = None
        current_name = None
        inbound = outbound = 0
        async for warehouse_id, name, created_at, status in self._paged(stmt, progress):
            key = (warehouse_id, created_at.date())
            if key != current_key:
                if current_key is not None:
                    yield (current_name, current_key[1].isoformat(), inbound, outbound)
                current_key, current_name = key, name or "Unknown"
                inbound = outbound = 0
            inbound += 1
            if status != ShipmentStatus.PREPARING.value:
                outbound += 1
        if current_key is not None:
            yield (current_name, current_key[1].isoformat(), inbound, outbound)

    def _user_activity(self, f: ReportFilters, progress) -> AsyncIterator[Sequence[Any]]:
        stmt = select(User.id, User.email, User.role, User.created_at, User.updated_at).order_by(
            User.created_at.desc(), User.id
        )
        if f.date_from:
            stmt = stmt.where(User.created_at >= f.date_from)
        if f.date_to:
            stmt = stmt.where(User.created_at <= f.date_to)
        return self._paged(stmt, progress)
