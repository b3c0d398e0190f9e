"""Order model: a parcel booked by a vendor for delivery out of the hub."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Text, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, MoneyType

if TYPE_CHECKING:
    from app.models.vendor import Vendor
    from app.models.user import User
    from app.models.fare import Fare
    from app.models.shipment import Shipment


class OrderStatus(str, Enum):
    """Order status. Updates accept any value; no transition graph is enforced."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class DeliveryType(str, Enum):
    """Delivery type; selects which fare price applies."""
    BRANCH_DELIVERY = "BRANCH_DELIVERY"  # Customer collects at the branch
    COD_BRANCH = "COD_BRANCH"            # Cash on delivery, collected at branch
    DOOR_DELIVERY = "DOOR_DELIVERY"      # Delivered to the address


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True,
        comment="ORD-{epochMillis}-{random}"
    )

    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    fare_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("fares.id", ondelete="RESTRICT"), nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(50),
        default=OrderStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="PENDING, CONFIRMED, PROCESSING, SHIPPED, DELIVERED, CANCELLED, RETURNED"
    )

    # Recipient
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    delivery_city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    contact_number: Mapped[str] = mapped_column(String(20), nullable=False)
    alternate_contact_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Parcel
    delivery_type: Mapped[str] = mapped_column(String(30), nullable=False)
    product_weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3), nullable=True, comment="kg")
    product_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Amounts
    amount_to_be_collected: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False, comment="Cash to collect from recipient"
    )
    total_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, comment="Fare for the delivery type plus amount to be collected"
    )

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

    # Relationships
    vendor: Mapped["Vendor"] = relationship("Vendor", back_populates="orders")
    user: Mapped[Optional["User"]] = relationship("User", back_populates="orders")
    fare: Mapped["Fare"] = relationship("Fare")
    shipments: Mapped[List["Shipment"]] = relationship(
        "Shipment",
        back_populates="order",
        order_by="Shipment.created_at.desc()"
    )

    def __repr__(self) -> str:
        return f"<Order(number='{self.order_number}', status='{self.status}')>"
