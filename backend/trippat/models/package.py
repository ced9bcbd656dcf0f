"""Travel package models carrying the pricing schedule."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trippat.db.base import Base
from trippat.models.mixins import TimestampMixin
from trippat.models.pricing import JSONB_TYPE, DiscountType


class TravelPackage(TimestampMixin, Base):
    """Bookable package with per-traveler-class prices."""

    __tablename__ = "packages"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    categories: Mapped[list[Any]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price_adult: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    price_child: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    price_infant: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    sale_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    discount_type: Mapped[DiscountType | None] = mapped_column(Enum(DiscountType))
    discount_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")
    availability: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    max_travelers: Mapped[int] = mapped_column(Integer, nullable=False, default=20)

    hotels: Mapped[list["PackageHotel"]] = relationship(
        "PackageHotel",
        back_populates="package",
        cascade="all, delete-orphan",
        order_by="PackageHotel.check_in_day",
    )

    @property
    def has_hotels(self) -> bool:
        return bool(self.hotels)


class PackageHotel(Base):
    """Hotel stay included in a package."""

    __tablename__ = "package_hotels"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    package_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("packages.id", ondelete="CASCADE"), nullable=False
    )
    hotel_code: Mapped[str] = mapped_column(String(64), nullable=False)
    hotel_name: Mapped[str] = mapped_column(String(255), nullable=False)
    nights: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    check_in_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price_per_night: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")
    live_pricing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    package: Mapped[TravelPackage] = relationship(
        "TravelPackage", back_populates="hotels"
    )
