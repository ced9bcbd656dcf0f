"""Choose which total a package view shows."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

from trippat.services.date_range import DateRange
from trippat.services.pricing_service import PriceQuote
from trippat.services.travelers import TravelerComposition
from trippat.storefront.live_pricing import (
    LiveAvailable,
    LiveError,
    LivePricingSnapshot,
    LiveState,
    LiveUnavailable,
)


class PriceSource(str, enum.Enum):
    STATIC = "static"
    LIVE = "live"


class NoticeKind(str, enum.Enum):
    NONE = "none"
    NO_AVAILABILITY = "no_availability"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True, slots=True)
class PricingDisplay:
    """Everything a package view needs to render its price box."""

    total: Decimal
    currency: str
    source: PriceSource
    subtotal: Decimal
    discount_amount: Decimal
    coupon_amount: Decimal
    coupon_code: str | None = None
    price_per_person: Decimal | None = None
    loading: bool = False
    notice_kind: NoticeKind = NoticeKind.NONE
    notice: str | None = None
    coupon_message: str | None = None

    @property
    def live_pricing_included(self) -> bool:
        return self.source is PriceSource.LIVE


def present(
    quote: PriceQuote,
    snapshot: LivePricingSnapshot,
    *,
    travelers: TravelerComposition,
    date_range: DateRange,
    coupon_message: str | None = None,
) -> PricingDisplay:
    """Pick the live total only when it was priced for the current inputs."""
    current = snapshot.matches(travelers, date_range)
    result = snapshot.result

    if current and snapshot.is_fulfilled and isinstance(result, LiveAvailable):
        return PricingDisplay(
            total=result.total,
            currency=result.currency,
            source=PriceSource.LIVE,
            subtotal=quote.subtotal,
            discount_amount=quote.discount_amount,
            coupon_amount=Decimal("0.00"),
            price_per_person=result.price_per_person,
            coupon_message=coupon_message,
        )

    notice_kind = NoticeKind.NONE
    notice = None
    if current and snapshot.state is LiveState.FAILED:
        if isinstance(result, LiveError):
            notice_kind = NoticeKind.NETWORK_ERROR
        elif isinstance(result, LiveUnavailable):
            notice_kind = NoticeKind.NO_AVAILABILITY
        notice = getattr(result, "reason", None)

    return PricingDisplay(
        total=quote.grand_total,
        currency=quote.currency,
        source=PriceSource.STATIC,
        subtotal=quote.subtotal,
        discount_amount=quote.discount_amount,
        coupon_amount=quote.coupon_amount,
        coupon_code=quote.coupon_code,
        loading=current and snapshot.state is LiveState.REQUESTING,
        notice_kind=notice_kind,
        notice=notice,
        coupon_message=coupon_message,
    )
