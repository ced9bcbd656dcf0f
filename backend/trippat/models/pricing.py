"""Coupon models and shared discount enums."""

from __future__ import annotations

import datetime
import enum
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from trippat.db.base import Base
from trippat.models.mixins import TimestampMixin

JSONB_TYPE = JSONB().with_variant(JSON(), "sqlite")


class DiscountType(str, enum.Enum):
    """How a discount value is interpreted."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Coupon(TimestampMixin, Base):
    """Customer-facing coupon code."""

    __tablename__ = "coupons"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(DiscountType), nullable=False, default=DiscountType.PERCENTAGE
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    minimum_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    maximum_discount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    usage_limit: Mapped[int | None] = mapped_column(Integer)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valid_from: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    valid_until: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    applicable_package_ids: Mapped[list[Any]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    applicable_categories: Mapped[list[Any]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    excluded_package_ids: Mapped[list[Any]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
