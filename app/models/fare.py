import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, MoneyType


class Fare(Base):
    """
    Delivery prices for one route out of the hub city.

    One row per (from_city, to_city); each delivery type has its own price.
    """
    __tablename__ = "fares"
    __table_args__ = (
        UniqueConstraint("from_city", "to_city", name="uq_fares_route"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    from_city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    to_city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Prices per delivery type
    branch_delivery: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    cod_branch: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    door_delivery: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Fare(route='{self.from_city}->{self.to_city}')>"
