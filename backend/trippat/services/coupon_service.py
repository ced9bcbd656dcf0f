"""Coupon administration and validation services."""

from __future__ import annotations

import enum
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trippat.models import Coupon, DiscountType, TravelPackage
from trippat.schemas.coupon import CouponCreate, CouponUpdate

logger = logging.getLogger(__name__)

_CURRENCY_UNIT = Decimal("0.01")


class RejectionReason(str, enum.Enum):
    """Why a coupon could not be applied."""

    NOT_FOUND = "not_found"
    NOT_YET_ACTIVE = "not_yet_active"
    EXPIRED = "expired"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    NOT_APPLICABLE_TO_PACKAGE = "not_applicable_to_package"
    MINIMUM_AMOUNT_NOT_MET = "minimum_amount_not_met"
    NETWORK_FAILURE = "network_failure"


class CouponRejected(ValueError):
    """Raised when a coupon cannot be applied to an amount."""

    def __init__(self, reason: RejectionReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


@dataclass(slots=True)
class CouponValidation:
    """Discount granted by a coupon against ``amount``."""

    coupon_id: uuid.UUID
    code: str
    name: str
    discount_type: DiscountType
    discount_value: Decimal
    amount: Decimal
    discount_amount: Decimal

    @property
    def final_amount(self) -> Decimal:
        return _to_money(self.amount - self.discount_amount)


def _to_money(value: Decimal | float | str) -> Decimal:
    return Decimal(str(value)).quantize(_CURRENCY_UNIT, rounding=ROUND_HALF_UP)


def _coerce_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _id_strings(values: Iterable[Any]) -> list[str]:
    return [str(value) for value in values]


def meets_minimum(coupon: Coupon, amount: Decimal) -> bool:
    return _to_money(amount) >= _to_money(coupon.minimum_amount)


def calculate_discount(coupon: Coupon, amount: Decimal) -> Decimal:
    """Discount for ``amount`` before any minimum order check.

    Zero is a legitimate result, e.g. a coupon capped at nothing.
    """
    amount = _to_money(amount)
    if coupon.discount_type is DiscountType.PERCENTAGE:
        discount = amount * Decimal(coupon.discount_value) / Decimal("100")
    else:
        discount = Decimal(coupon.discount_value)
    if coupon.maximum_discount is not None:
        discount = min(discount, Decimal(coupon.maximum_discount))
    return _to_money(min(discount, amount))


def is_applicable_to_package(coupon: Coupon, package: TravelPackage) -> bool:
    package_id = str(package.id)
    if package_id in _id_strings(coupon.excluded_package_ids or []):
        return False
    if package_id in _id_strings(coupon.applicable_package_ids or []):
        return True
    categories = set(coupon.applicable_categories or [])
    if categories:
        return bool(categories & set(package.categories or []))
    return not coupon.applicable_package_ids


def rejection_for_window(coupon: Coupon, now: datetime) -> CouponRejected | None:
    """Return the rejection for a coupon outside its usable window, if any."""
    if now < _coerce_utc(coupon.valid_from):
        return CouponRejected(
            RejectionReason.NOT_YET_ACTIVE, "Coupon is not yet active"
        )
    if now > _coerce_utc(coupon.valid_until):
        return CouponRejected(RejectionReason.EXPIRED, "Coupon has expired")
    if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
        return CouponRejected(
            RejectionReason.USAGE_LIMIT_REACHED,
            "Coupon usage limit has been reached",
        )
    return None


async def validate_coupon(
    session: AsyncSession,
    *,
    code: str,
    package_id: uuid.UUID,
    amount: Decimal,
    now: datetime | None = None,
) -> CouponValidation:
    """Validate ``code`` for a package and compute its discount on ``amount``."""
    now = _coerce_utc(now or datetime.now(UTC))
    coupon = await get_coupon_by_code(session, code, active_only=True)
    if coupon is None:
        raise CouponRejected(RejectionReason.NOT_FOUND, "Invalid coupon code")

    rejection = rejection_for_window(coupon, now)
    if rejection is not None:
        raise rejection

    package = await session.get(TravelPackage, package_id)
    if package is None:
        raise CouponRejected(RejectionReason.NOT_FOUND, "Package not found")
    if not is_applicable_to_package(coupon, package):
        raise CouponRejected(
            RejectionReason.NOT_APPLICABLE_TO_PACKAGE,
            "Coupon is not applicable to this package",
        )

    if not meets_minimum(coupon, amount):
        raise CouponRejected(
            RejectionReason.MINIMUM_AMOUNT_NOT_MET,
            f"Minimum order amount of {_to_money(coupon.minimum_amount)} "
            f"{package.currency} required",
        )
    discount = calculate_discount(coupon, amount)

    return CouponValidation(
        coupon_id=coupon.id,
        code=coupon.code,
        name=coupon.name,
        discount_type=coupon.discount_type,
        discount_value=_to_money(coupon.discount_value),
        amount=_to_money(amount),
        discount_amount=discount,
    )


async def get_coupon_by_code(
    session: AsyncSession, code: str, *, active_only: bool = False
) -> Coupon | None:
    stmt = select(Coupon).where(Coupon.code == code.strip().upper())
    if active_only:
        stmt = stmt.where(Coupon.is_active.is_(True))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_coupon(session: AsyncSession, coupon_id: uuid.UUID) -> Coupon | None:
    return await session.get(Coupon, coupon_id)


async def list_coupons(
    session: AsyncSession,
    *,
    search: str | None = None,
    is_active: bool | None = None,
    discount_type: DiscountType | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Coupon], int]:
    """Return one page of coupons and the total matching count."""
    stmt: Select[tuple[Coupon]] = select(Coupon)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Coupon.code.ilike(pattern), Coupon.name.ilike(pattern)))
    if is_active is not None:
        stmt = stmt.where(Coupon.is_active.is_(is_active))
    if discount_type is not None:
        stmt = stmt.where(Coupon.discount_type == discount_type)

    total = await session.scalar(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )
    stmt = (
        stmt.order_by(Coupon.created_at.desc(), Coupon.code.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), int(total or 0)


async def create_coupon(session: AsyncSession, payload: CouponCreate) -> Coupon:
    if await get_coupon_by_code(session, payload.code) is not None:
        raise ValueError("Coupon code already exists")
    data = payload.model_dump()
    for key in ("applicable_package_ids", "excluded_package_ids"):
        data[key] = _id_strings(data[key])
    coupon = Coupon(**data)
    session.add(coupon)
    await session.commit()
    await session.refresh(coupon)
    logger.info("Created coupon %s", coupon.code)
    return coupon


async def update_coupon(
    session: AsyncSession, *, coupon: Coupon, payload: CouponUpdate
) -> Coupon:
    data = payload.model_dump(exclude_unset=True)
    for key in ("applicable_package_ids", "excluded_package_ids"):
        if data.get(key) is not None:
            data[key] = _id_strings(data[key])
    valid_from = data.get("valid_from", coupon.valid_from)
    valid_until = data.get("valid_until", coupon.valid_until)
    if _coerce_utc(valid_until) <= _coerce_utc(valid_from):
        raise ValueError("valid_until must be after valid_from")
    for key, value in data.items():
        setattr(coupon, key, value)
    await session.commit()
    await session.refresh(coupon)
    return coupon


async def delete_coupon(session: AsyncSession, *, coupon: Coupon) -> None:
    await session.delete(coupon)
    await session.commit()
    logger.info("Deleted coupon %s", coupon.code)


def coupon_stats(coupon: Coupon, now: datetime | None = None) -> dict[str, Any]:
    """Usage summary for the admin dashboard."""
    now = _coerce_utc(now or datetime.now(UTC))
    if coupon.usage_limit is not None:
        remaining: int | str = max(0, coupon.usage_limit - coupon.usage_count)
    else:
        remaining = "unlimited"
    seconds_left = (_coerce_utc(coupon.valid_until) - now).total_seconds()
    return {
        "code": coupon.code,
        "usage_count": coupon.usage_count,
        "remaining_usage": remaining,
        "is_valid": coupon.is_active and rejection_for_window(coupon, now) is None,
        "days_remaining": math.ceil(seconds_left / 86400),
    }


async def record_usage(session: AsyncSession, coupon_id: uuid.UUID) -> None:
    """Increment a coupon's usage count inside the caller's transaction.

    Only a coupon still under its usage limit is incremented; otherwise
    ``CouponRejected`` is raised and the caller should roll back.
    """
    result = await session.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            or_(
                Coupon.usage_limit.is_(None),
                Coupon.usage_count < Coupon.usage_limit,
            ),
        )
        .values(usage_count=Coupon.usage_count + 1)
    )
    if result.rowcount == 0:
        logger.warning("Coupon %s has no usage left", coupon_id)
        raise CouponRejected(
            RejectionReason.USAGE_LIMIT_REACHED,
            "Coupon usage limit has been reached",
        )
