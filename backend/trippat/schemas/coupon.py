"""Coupon schema definitions."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from trippat.models import DiscountType


class CouponBase(BaseModel):
    """Fields shared by coupon create and read payloads."""

    code: str = Field(min_length=3, max_length=20)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(ge=0)
    minimum_amount: Decimal = Field(default=Decimal("0"), ge=0)
    maximum_discount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    valid_from: datetime.datetime
    valid_until: datetime.datetime
    is_active: bool = True
    applicable_package_ids: list[uuid.UUID] = Field(default_factory=list)
    applicable_categories: list[str] = Field(default_factory=list)
    excluded_package_ids: list[uuid.UUID] = Field(default_factory=list)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class CouponCreate(CouponBase):
    """Payload for creating a coupon."""

    @model_validator(mode="after")
    def _check_window(self) -> "CouponCreate":
        if self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        if (
            self.discount_type is DiscountType.PERCENTAGE
            and self.discount_value > Decimal("100")
        ):
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class CouponUpdate(BaseModel):
    """Partial update for a coupon."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, ge=0)
    minimum_amount: Decimal | None = Field(default=None, ge=0)
    maximum_discount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    valid_from: datetime.datetime | None = None
    valid_until: datetime.datetime | None = None
    is_active: bool | None = None
    applicable_package_ids: list[uuid.UUID] | None = None
    applicable_categories: list[str] | None = None
    excluded_package_ids: list[uuid.UUID] | None = None


class CouponRead(CouponBase):
    """Coupon representation returned to admins."""

    id: uuid.UUID
    usage_count: int
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class CouponPage(BaseModel):
    """Paginated coupon listing."""

    items: list[CouponRead]
    total: int
    page: int
    limit: int
    total_pages: int


class CouponStatsRead(BaseModel):
    code: str
    usage_count: int
    remaining_usage: int | str
    is_valid: bool
    days_remaining: int


class CouponValidateRequest(BaseModel):
    """Storefront request to validate a coupon against an amount."""

    code: str = Field(min_length=1, max_length=20)
    package_id: uuid.UUID
    amount: Decimal = Field(gt=0)


class CouponDiscountRead(BaseModel):
    type: DiscountType
    value: Decimal
    amount: Decimal


class CouponSummaryRead(BaseModel):
    id: uuid.UUID
    code: str
    name: str


class CouponValidateResponse(BaseModel):
    """Outcome of a coupon validation; rejections carry a reason."""

    success: bool
    discount: CouponDiscountRead | None = None
    coupon: CouponSummaryRead | None = None
    final_amount: Decimal | None = None
    reason: str | None = None
    message: str | None = None
