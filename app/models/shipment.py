"""Shipment model: the physical movement of an order from a warehouse."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType

if TYPE_CHECKING:
    from app.models.order import Order
    from app.models.warehouse import Warehouse


class ShipmentStatus(str, Enum):
    """Shipment status enumeration."""
    PREPARING = "PREPARING"                # Always the initial status
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    FAILED_DELIVERY = "FAILED_DELIVERY"
    RETURNED = "RETURNED"


class Shipment(Base):
    __tablename__ = "shipments"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    tracking_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True,
        comment="TRK-{epochMillis}-{random}"
    )

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(50),
        default=ShipmentStatus.PREPARING.value,
        nullable=False,
        index=True,
        comment="PREPARING, PICKED_UP, IN_TRANSIT, OUT_FOR_DELIVERY, DELIVERED, FAILED_DELIVERY, RETURNED"
    )
    carrier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    estimated_delivery: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_delivery: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    order: Mapped["Order"] = relationship("Order", back_populates="shipments")
    warehouse: Mapped["Warehouse"] = relationship("Warehouse", back_populates="shipments")

    @property
    def is_delivered(self) -> bool:
        return self.status == ShipmentStatus.DELIVERED

    def __repr__(self) -> str:
        return f"<Shipment(tracking='{self.tracking_number}', status='{self.status}')>"
