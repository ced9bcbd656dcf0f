"""Pricing session owned by one open package view."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from trippat.models import PricingMode
from trippat.services.coupon_service import CouponRejected, RejectionReason
from trippat.services.date_range import DateRange, resolve_date_range
from trippat.services.pricing_service import (
    AppliedCoupon,
    PriceQuote,
    PricingSchedule,
    compute_static_quote,
)
from trippat.services.travelers import TravelerClass, TravelerComposition
from trippat.storefront.gateway import ValidatedCoupon
from trippat.storefront.live_pricing import (
    LivePricingCoordinator,
    LivePricingFetcher,
    LivePricingSnapshot,
)
from trippat.storefront.presentation import PriceSource, PricingDisplay, present

logger = logging.getLogger(__name__)

COUPON_CLEARED_MESSAGE = (
    "Your coupon was removed because the booking changed. Please apply it again."
)
COUPON_INPUTS_CHANGED_MESSAGE = (
    "Your booking changed while the coupon was being checked. Please apply it again."
)


class StorefrontGateway(LivePricingFetcher, Protocol):
    async def fetch_package(self, package_id: Any) -> dict[str, Any]: ...

    async def validate_coupon(
        self, code: str, package_id: Any, amount: Decimal
    ) -> ValidatedCoupon: ...


@dataclass(frozen=True, slots=True)
class PackageView:
    """The pricing-relevant part of a package as the storefront sees it."""

    package_id: str
    duration_days: int
    schedule: PricingSchedule
    has_hotels: bool
    max_travelers: int = 20

    @property
    def currency(self) -> str:
        return self.schedule.currency

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> PackageView:
        return cls(
            package_id=str(data["id"]),
            duration_days=int(data.get("duration_days") or 1),
            schedule=PricingSchedule.build(
                data["price_adult"],
                child_price=data.get("price_child"),
                infant_price=data.get("price_infant"),
                sale_price=data.get("sale_price"),
                discount_type=data.get("discount_type"),
                discount_value=data.get("discount_value"),
                currency=data.get("currency") or "SAR",
            ),
            has_hotels=bool(data.get("hotels")),
            max_travelers=int(data.get("max_travelers") or 20),
        )


class PricingSession:
    """Single source of truth for the price shown on one package view.

    Presentation reads :meth:`display`; inputs change only through the
    methods below, each of which recomputes the static quote from scratch and
    re-triggers live pricing.
    """

    def __init__(
        self,
        package: PackageView,
        gateway: StorefrontGateway,
        *,
        travelers: TravelerComposition | None = None,
        currency: str | None = None,
    ) -> None:
        self._package = package
        self._gateway = gateway
        self._travelers = travelers or TravelerComposition()
        self._travelers.require_quotable()
        self._date_range = DateRange()
        self._coupon: AppliedCoupon | None = None
        self._coupon_message: str | None = None
        self._coupon_reason: RejectionReason | None = None
        self._version = 0
        self._coordinator = LivePricingCoordinator(
            gateway,
            package_id=package.package_id,
            has_hotels=package.has_hotels,
            currency=currency or package.currency,
        )
        self._quote = compute_static_quote(package.schedule, self._travelers)

    @classmethod
    async def open(
        cls, gateway: StorefrontGateway, package_id: str, **kwargs: Any
    ) -> PricingSession:
        data = await gateway.fetch_package(package_id)
        return cls(PackageView.from_api(data), gateway, **kwargs)

    @property
    def package(self) -> PackageView:
        return self._package

    @property
    def travelers(self) -> TravelerComposition:
        return self._travelers

    @property
    def date_range(self) -> DateRange:
        return self._date_range

    @property
    def coupon(self) -> AppliedCoupon | None:
        return self._coupon

    @property
    def coupon_reason(self) -> RejectionReason | None:
        return self._coupon_reason

    @property
    def quote(self) -> PriceQuote:
        return self._quote

    @property
    def live(self) -> LivePricingSnapshot:
        return self._coordinator.snapshot

    @property
    def coordinator(self) -> LivePricingCoordinator:
        return self._coordinator

    def select_check_in(self, check_in: datetime.date | str) -> None:
        self._change(
            self._travelers, resolve_date_range(check_in, self._package.duration_days)
        )

    def clear_dates(self) -> None:
        self._change(self._travelers, DateRange())

    def increment(self, traveler_class: TravelerClass) -> None:
        if self._travelers.total >= self._package.max_travelers:
            return
        self._change(self._travelers.increment(traveler_class), self._date_range)

    def decrement(self, traveler_class: TravelerClass) -> None:
        self._change(self._travelers.decrement(traveler_class), self._date_range)

    def set_travelers(self, travelers: TravelerComposition) -> None:
        travelers.require_quotable()
        if travelers.total > self._package.max_travelers:
            raise ValueError(
                f"Package allows at most {self._package.max_travelers} travelers"
            )
        self._change(travelers, self._date_range)

    def _change(self, travelers: TravelerComposition, date_range: DateRange) -> None:
        if travelers == self._travelers and date_range == self._date_range:
            return
        self._travelers = travelers
        self._date_range = date_range
        self._version += 1

        baseline = compute_static_quote(self._package.schedule, travelers)
        if self._coupon is not None and not self._coupon.matches(
            baseline.pre_coupon_total
        ):
            logger.info(
                "Clearing coupon %s: validated against %s, amount is now %s",
                self._coupon.code,
                self._coupon.validated_amount,
                baseline.pre_coupon_total,
            )
            self._coupon = None
            self._coupon_reason = None
            self._coupon_message = COUPON_CLEARED_MESSAGE
        self._quote = compute_static_quote(
            self._package.schedule, travelers, self._coupon
        )
        self._coordinator.update(travelers, date_range)

    async def apply_coupon(self, code: str) -> bool:
        """Validate ``code`` against the current pre-coupon total."""
        version = self._version
        amount = self._quote.pre_coupon_total
        try:
            validated = await self._gateway.validate_coupon(
                code, self._package.package_id, amount
            )
        except CouponRejected as exc:
            self._coupon_reason = exc.reason
            self._coupon_message = exc.message
            return False

        if version != self._version:
            self._coupon_reason = None
            self._coupon_message = COUPON_INPUTS_CHANGED_MESSAGE
            return False

        self._coupon = AppliedCoupon(
            code=validated.code,
            discount_type=validated.discount_type,
            discount_value=validated.discount_value,
            discount_amount=validated.discount_amount,
            validated_amount=amount,
            coupon_id=validated.coupon_id,
        )
        self._coupon_reason = None
        self._coupon_message = None
        self._quote = compute_static_quote(
            self._package.schedule, self._travelers, self._coupon
        )
        return True

    def remove_coupon(self) -> None:
        self._coupon = None
        self._coupon_reason = None
        self._coupon_message = None
        self._quote = compute_static_quote(self._package.schedule, self._travelers)

    def display(self) -> PricingDisplay:
        return present(
            self._quote,
            self._coordinator.snapshot,
            travelers=self._travelers,
            date_range=self._date_range,
            coupon_message=self._coupon_message,
        )

    def booking_payload(self, contact: dict[str, str]) -> dict[str, Any]:
        """Booking request for the total currently displayed."""
        if self._date_range.check_in is None:
            raise ValueError("Select a check-in date before booking")
        shown = self.display()
        if shown.loading:
            raise ValueError("Wait for live pricing to finish before booking")
        coupon = self._coupon if shown.source is PriceSource.STATIC else None
        return {
            "package_id": self._package.package_id,
            **self._travelers.as_dict(),
            "check_in": self._date_range.check_in.isoformat(),
            "total_price": str(shown.total),
            "currency": shown.currency,
            "pricing_mode": (
                PricingMode.LIVE.value
                if shown.source is PriceSource.LIVE
                else PricingMode.STATIC.value
            ),
            "coupon_code": coupon.code if coupon else None,
            "coupon_amount": str(self._quote.coupon_amount if coupon else Decimal("0")),
            "contact": contact,
        }

    async def close(self) -> None:
        await self._coordinator.close()
