"""Static price quote engine for travel packages."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trippat.models import DiscountType, TravelPackage
from trippat.services import coupon_service, package_service
from trippat.services.travelers import TravelerClass, TravelerComposition

MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_CHILD_RATIO = Decimal("0.7")
DEFAULT_INFANT_RATIO = Decimal("0.1")


def _to_money(value: Decimal | float | int | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_str(value: Decimal) -> str:
    return f"{value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP):.2f}"


class DiscountKind(str, enum.Enum):
    """Package-level discount mechanisms; exactly one is in force."""

    NONE = "none"
    SALE_PRICE = "sale_price"
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True, slots=True)
class DiscountPolicy:
    kind: DiscountKind = DiscountKind.NONE
    value: Decimal = ZERO

    @classmethod
    def resolve(
        cls,
        *,
        sale_price: Decimal | None,
        discount_type: DiscountType | str | None,
        discount_value: Decimal | None,
    ) -> DiscountPolicy:
        """Pick the authoritative discount; a sale price beats everything else."""
        if sale_price is not None:
            if sale_price < 0:
                raise ValueError("Sale price cannot be negative")
            return cls(DiscountKind.SALE_PRICE, _to_money(sale_price))
        if discount_type is None or not discount_value:
            return cls()
        value = _to_money(discount_value)
        if DiscountType(discount_type) is DiscountType.PERCENTAGE:
            if not Decimal("0") <= value <= Decimal("100"):
                raise ValueError("Percentage discount must be between 0 and 100")
            return cls(DiscountKind.PERCENTAGE, value)
        if value < 0:
            raise ValueError("Fixed discount cannot be negative")
        return cls(DiscountKind.FIXED, value)


@dataclass(frozen=True, slots=True)
class PricingSchedule:
    """Per-class prices and the discount in force for one package."""

    adult_price: Decimal
    child_price: Decimal | None = None
    infant_price: Decimal | None = None
    discount: DiscountPolicy = field(default_factory=DiscountPolicy)
    currency: str = "SAR"

    @classmethod
    def build(
        cls,
        adult_price: Decimal | int | str,
        *,
        child_price: Decimal | int | str | None = None,
        infant_price: Decimal | int | str | None = None,
        sale_price: Decimal | int | str | None = None,
        discount_type: DiscountType | str | None = None,
        discount_value: Decimal | int | str | None = None,
        currency: str = "SAR",
    ) -> PricingSchedule:
        adult = _to_money(adult_price)
        if adult < 0:
            raise ValueError("Adult price cannot be negative")
        return cls(
            adult_price=adult,
            child_price=None if child_price is None else _to_money(child_price),
            infant_price=None if infant_price is None else _to_money(infant_price),
            discount=DiscountPolicy.resolve(
                sale_price=None if sale_price is None else _to_money(sale_price),
                discount_type=discount_type,
                discount_value=(
                    None if discount_value is None else _to_money(discount_value)
                ),
            ),
            currency=currency,
        )

    @classmethod
    def from_package(cls, package: TravelPackage) -> PricingSchedule:
        return cls.build(
            package.price_adult,
            child_price=package.price_child,
            infant_price=package.price_infant,
            sale_price=package.sale_price,
            discount_type=package.discount_type,
            discount_value=package.discount_value,
            currency=package.currency,
        )

    def price_for(self, traveler_class: TravelerClass) -> Decimal:
        """Undiscounted unit price for a traveler class."""
        if traveler_class is TravelerClass.ADULT:
            return self.adult_price
        if traveler_class is TravelerClass.CHILD:
            if self.child_price is not None:
                return self.child_price
            return _to_money(self.adult_price * DEFAULT_CHILD_RATIO)
        if self.infant_price is not None:
            return self.infant_price
        return _to_money(self.adult_price * DEFAULT_INFANT_RATIO)


@dataclass(frozen=True, slots=True)
class AppliedCoupon:
    """A coupon discount validated against ``validated_amount``."""

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    validated_amount: Decimal
    coupon_id: str | None = None

    def matches(self, pre_coupon_total: Decimal) -> bool:
        return _to_money(self.validated_amount) == _to_money(pre_coupon_total)


@dataclass(slots=True)
class PricingLine:
    """Individual component contributing to a package quote."""

    description: str
    amount: Decimal
    quantity: int = 1
    unit_price: Decimal | None = None


@dataclass(slots=True)
class PriceQuote:
    """Full price breakdown for a traveler composition."""

    currency: str
    items: list[PricingLine]
    subtotal: Decimal
    discount_amount: Decimal
    pre_coupon_total: Decimal
    coupon_amount: Decimal
    grand_total: Decimal
    coupon_applied: bool = False
    coupon_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the quote to plain types for responses."""

        def _serialize(line: PricingLine) -> dict[str, Any]:
            return {
                "description": line.description,
                "quantity": line.quantity,
                "unit_price": (
                    None if line.unit_price is None else _to_str(line.unit_price)
                ),
                "amount": _to_str(line.amount),
            }

        return {
            "currency": self.currency,
            "items": [_serialize(line) for line in self.items],
            "subtotal": _to_str(self.subtotal),
            "discount_amount": _to_str(self.discount_amount),
            "pre_coupon_total": _to_str(self.pre_coupon_total),
            "coupon_amount": _to_str(self.coupon_amount),
            "grand_total": _to_str(self.grand_total),
            "coupon_applied": self.coupon_applied,
            "coupon_code": self.coupon_code,
        }


_CLASS_LABELS = {
    TravelerClass.ADULT: "Adults",
    TravelerClass.CHILD: "Children",
    TravelerClass.INFANT: "Infants",
}


def compute_static_quote(
    schedule: PricingSchedule,
    travelers: TravelerComposition,
    coupon: AppliedCoupon | None = None,
) -> PriceQuote:
    """Compute the package price for ``travelers`` from scratch.

    The subtotal always uses undiscounted unit prices. A coupon only applies
    when it was validated against the current pre-coupon total.
    """
    items: list[PricingLine] = []
    subtotal = ZERO
    for traveler_class in TravelerClass:
        count = travelers.count_for(traveler_class)
        if count == 0:
            continue
        unit_price = schedule.price_for(traveler_class)
        amount = _to_money(unit_price * count)
        items.append(
            PricingLine(
                description=_CLASS_LABELS[traveler_class],
                amount=amount,
                quantity=count,
                unit_price=unit_price,
            )
        )
        subtotal += amount

    discount_amount = _discount_amount(schedule, travelers, subtotal)
    if discount_amount:
        items.append(
            PricingLine(description=_discount_label(schedule), amount=-discount_amount)
        )
    pre_coupon_total = max(ZERO, subtotal - discount_amount)

    coupon_amount = ZERO
    coupon_applied = False
    if coupon is not None and coupon.matches(pre_coupon_total):
        coupon_amount = min(_to_money(coupon.discount_amount), pre_coupon_total)
        coupon_applied = True
        items.append(
            PricingLine(description=f"Coupon {coupon.code}", amount=-coupon_amount)
        )

    return PriceQuote(
        currency=schedule.currency,
        items=items,
        subtotal=_to_money(subtotal),
        discount_amount=discount_amount,
        pre_coupon_total=_to_money(pre_coupon_total),
        coupon_amount=coupon_amount,
        grand_total=_to_money(max(ZERO, subtotal - discount_amount - coupon_amount)),
        coupon_applied=coupon_applied,
        coupon_code=coupon.code if coupon_applied and coupon else None,
    )


def _discount_amount(
    schedule: PricingSchedule, travelers: TravelerComposition, subtotal: Decimal
) -> Decimal:
    handler_map = {
        DiscountKind.NONE: _no_discount,
        DiscountKind.SALE_PRICE: _sale_price_discount,
        DiscountKind.PERCENTAGE: _percentage_discount,
        DiscountKind.FIXED: _fixed_discount,
    }
    return handler_map[schedule.discount.kind](schedule, travelers, subtotal)


def _no_discount(
    schedule: PricingSchedule, travelers: TravelerComposition, subtotal: Decimal
) -> Decimal:
    return ZERO


def _sale_price_discount(
    schedule: PricingSchedule, travelers: TravelerComposition, subtotal: Decimal
) -> Decimal:
    if schedule.adult_price <= 0:
        return ZERO
    ratio = schedule.discount.value / schedule.adult_price
    discounted = ZERO
    for traveler_class in TravelerClass:
        unit_price = _to_money(schedule.price_for(traveler_class) * ratio)
        discounted += unit_price * travelers.count_for(traveler_class)
    return _to_money(max(ZERO, subtotal - discounted))


def _percentage_discount(
    schedule: PricingSchedule, travelers: TravelerComposition, subtotal: Decimal
) -> Decimal:
    return _to_money(subtotal * schedule.discount.value / Decimal("100"))


def _fixed_discount(
    schedule: PricingSchedule, travelers: TravelerComposition, subtotal: Decimal
) -> Decimal:
    return _to_money(min(subtotal, schedule.discount.value))


def _discount_label(schedule: PricingSchedule) -> str:
    kind = schedule.discount.kind
    if kind is DiscountKind.SALE_PRICE:
        return "Sale price"
    if kind is DiscountKind.PERCENTAGE:
        return f"{schedule.discount.value.normalize():f}% off"
    return "Package discount"


async def quote_package(
    session: AsyncSession,
    *,
    package_id: UUID,
    travelers: TravelerComposition,
    coupon_code: str | None = None,
) -> PriceQuote:
    """Quote a stored package, validating ``coupon_code`` on the fly."""
    package = await package_service.get_package(session, package_id)
    if package is None:
        raise ValueError("Package not found")
    travelers.require_quotable()
    schedule = PricingSchedule.from_package(package)
    quote = compute_static_quote(schedule, travelers)
    if not coupon_code:
        return quote

    validation = await coupon_service.validate_coupon(
        session,
        code=coupon_code,
        package_id=package.id,
        amount=quote.pre_coupon_total,
    )
    return compute_static_quote(schedule, travelers, applied_coupon(validation))


def applied_coupon(validation: coupon_service.CouponValidation) -> AppliedCoupon:
    return AppliedCoupon(
        code=validation.code,
        discount_type=validation.discount_type,
        discount_value=validation.discount_value,
        discount_amount=validation.discount_amount,
        validated_amount=validation.amount,
        coupon_id=str(validation.coupon_id),
    )
