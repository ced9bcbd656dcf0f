"""Tests for the storefront pricing session."""

from __future__ import annotations

import asyncio
import datetime
from decimal import Decimal
from typing import Any

import httpx
import pytest

from trippat.models import DiscountType
from trippat.services.coupon_service import CouponRejected, RejectionReason
from trippat.services.travelers import TravelerClass, TravelerComposition
from trippat.storefront.gateway import (
    StorefrontApiClient,
    StorefrontGatewayError,
    ValidatedCoupon,
)
from trippat.storefront.presentation import NoticeKind, PriceSource
from trippat.storefront.session import (
    COUPON_CLEARED_MESSAGE,
    COUPON_INPUTS_CHANGED_MESSAGE,
    PackageView,
    PricingSession,
)

pytestmark = pytest.mark.asyncio

CONTACT = {"email": "guest@example.com", "phone": "+966500000000"}

CITY_PACKAGE = {
    "id": "city-1",
    "duration_days": 2,
    "price_adult": "1000.00",
    "discount_type": "percentage",
    "discount_value": "10",
    "currency": "SAR",
    "max_travelers": 4,
    "hotels": [],
}

HOTEL_PACKAGE = {
    "id": "hotel-1",
    "duration_days": 3,
    "price_adult": "1000.00",
    "currency": "SAR",
    "max_travelers": 6,
    "hotels": [{"hotel_code": "1402689", "nights": 2}],
}


class FakeGateway:
    """Storefront gateway double with test-controlled answers."""

    def __init__(self, package: dict[str, Any] | None = None) -> None:
        self.package = package or CITY_PACKAGE
        self.live_answers: list[asyncio.Future] = []
        self.coupon_gate: asyncio.Future | None = None
        self.coupon_error: CouponRejected | None = None
        self.coupon_amounts: list[Decimal] = []

    async def fetch_package(self, package_id: str) -> dict[str, Any]:
        return self.package

    async def fetch_live_pricing(self, package_id, travelers, date_range, currency):
        future = asyncio.get_running_loop().create_future()
        self.live_answers.append(future)
        return await future

    async def validate_coupon(self, code: str, package_id: Any, amount: Decimal) -> ValidatedCoupon:
        self.coupon_amounts.append(amount)
        if self.coupon_gate is not None:
            await self.coupon_gate
        if self.coupon_error is not None:
            raise self.coupon_error
        return ValidatedCoupon(
            coupon_id="coupon-1",
            code=code.upper(),
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
            discount_amount=(amount * Decimal("0.10")).quantize(Decimal("0.01")),
        )


async def _settle() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


async def _open(package: dict[str, Any] | None = None, **kwargs) -> tuple[PricingSession, FakeGateway]:
    gateway = FakeGateway(package)
    session = await PricingSession.open(gateway, gateway.package["id"], **kwargs)
    return session, gateway


async def test_open_builds_view_and_initial_quote() -> None:
    session, _ = await _open(travelers=TravelerComposition(adults=2))
    assert session.package == PackageView.from_api(CITY_PACKAGE)
    assert session.package.has_hotels is False
    assert session.quote.discount_amount == Decimal("200.00")
    assert session.display().total == Decimal("1800.00")
    assert session.display().source is PriceSource.STATIC


async def test_traveler_changes_recompute_immediately() -> None:
    session, _ = await _open()
    assert session.display().total == Decimal("900.00")
    session.increment(TravelerClass.CHILD)
    assert session.quote.subtotal == Decimal("1700.00")
    session.decrement(TravelerClass.ADULT)
    assert session.travelers.adults == 1
    session.decrement(TravelerClass.CHILD)
    assert session.display().total == Decimal("900.00")


async def test_increment_stops_at_package_capacity() -> None:
    session, _ = await _open(travelers=TravelerComposition(adults=4))
    session.increment(TravelerClass.INFANT)
    assert session.travelers.total == 4
    with pytest.raises(ValueError, match="at most 4"):
        session.set_travelers(TravelerComposition(adults=3, children=2))


async def test_coupon_applies_against_current_total() -> None:
    session, gateway = await _open(travelers=TravelerComposition(adults=2))
    assert await session.apply_coupon("save10") is True
    assert gateway.coupon_amounts == [Decimal("1800.00")]
    shown = session.display()
    assert shown.coupon_amount == Decimal("180.00")
    assert shown.coupon_code == "SAVE10"
    assert shown.total == Decimal("1620.00")


async def test_traveler_change_clears_coupon() -> None:
    session, _ = await _open(travelers=TravelerComposition(adults=2))
    await session.apply_coupon("SAVE10")

    session.increment(TravelerClass.ADULT)

    assert session.coupon is None
    assert session.quote.subtotal == Decimal("3000.00")
    assert session.quote.grand_total == Decimal("2700.00")
    assert all(not line.description.startswith("Coupon") for line in session.quote.items)
    assert session.display().coupon_message == COUPON_CLEARED_MESSAGE


async def test_date_change_keeps_coupon_when_amount_is_unchanged() -> None:
    session, _ = await _open(travelers=TravelerComposition(adults=2))
    await session.apply_coupon("SAVE10")
    session.select_check_in("2025-06-01")
    assert session.coupon is not None
    assert session.display().total == Decimal("1620.00")
    assert session.date_range.check_out == datetime.date(2025, 6, 2)


async def test_rejected_coupon_keeps_state() -> None:
    session, gateway = await _open(travelers=TravelerComposition(adults=2))
    gateway.coupon_error = CouponRejected(
        RejectionReason.EXPIRED, "This coupon has expired"
    )
    assert await session.apply_coupon("OLD") is False
    assert session.coupon is None
    assert session.coupon_reason is RejectionReason.EXPIRED
    shown = session.display()
    assert shown.total == Decimal("1800.00")
    assert shown.coupon_message == "This coupon has expired"


async def test_coupon_validated_for_stale_inputs_is_not_applied() -> None:
    session, gateway = await _open(travelers=TravelerComposition(adults=2))
    gateway.coupon_gate = asyncio.get_running_loop().create_future()

    pending = asyncio.create_task(session.apply_coupon("SAVE10"))
    await _settle()
    session.increment(TravelerClass.ADULT)
    gateway.coupon_gate.set_result(None)

    assert await pending is False
    assert session.coupon is None
    assert session.quote.grand_total == Decimal("2700.00")
    assert session.display().coupon_message == COUPON_INPUTS_CHANGED_MESSAGE


async def test_live_total_replaces_static_for_matching_inputs() -> None:
    session, gateway = await _open(HOTEL_PACKAGE, travelers=TravelerComposition(adults=2))
    session.select_check_in(datetime.date(2025, 6, 1))
    await _settle()

    shown = session.display()
    assert shown.source is PriceSource.STATIC
    assert shown.loading is True
    assert shown.total == Decimal("2000.00")

    gateway.live_answers[0].set_result(
        {"available": True, "currency": "SAR", "total_pricing": {"final_total": "750.00"}}
    )
    await session.coordinator.drain()
    shown = session.display()
    assert shown.source is PriceSource.LIVE
    assert shown.live_pricing_included is True
    assert shown.total == Decimal("750.00")

    session.increment(TravelerClass.ADULT)
    shown = session.display()
    assert shown.source is PriceSource.STATIC
    assert shown.total == Decimal("3000.00")
    assert shown.loading is True
    await session.close()


async def test_live_failures_fall_back_with_notice() -> None:
    session, gateway = await _open(HOTEL_PACKAGE, travelers=TravelerComposition(adults=2))
    session.select_check_in("2025-06-01")
    await _settle()
    gateway.live_answers[0].set_exception(StorefrontGatewayError("offline"))
    await session.coordinator.drain()
    shown = session.display()
    assert shown.source is PriceSource.STATIC
    assert shown.notice_kind is NoticeKind.NETWORK_ERROR

    session.select_check_in("2025-06-05")
    await _settle()
    gateway.live_answers[1].set_result({"available": False, "message": "Sold out"})
    await session.coordinator.drain()
    shown = session.display()
    assert shown.notice_kind is NoticeKind.NO_AVAILABILITY
    assert shown.notice == "Sold out"
    assert shown.total == Decimal("2000.00")


async def test_rate_limited_live_pricing_shows_network_notice() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=HOTEL_PACKAGE)
        return httpx.Response(429, json={"detail": "Too Many Requests"})

    client = StorefrontApiClient(
        "http://booking.test/api/v1/", transport=httpx.MockTransport(handler)
    )
    session = await PricingSession.open(
        client, "hotel-1", travelers=TravelerComposition(adults=2)
    )
    session.select_check_in("2025-06-01")
    await session.coordinator.drain()
    shown = session.display()
    await session.close()
    await client.aclose()

    assert shown.source is PriceSource.STATIC
    assert shown.notice_kind is NoticeKind.NETWORK_ERROR
    assert shown.total == Decimal("2000.00")


async def test_booking_payload_follows_displayed_total() -> None:
    session, gateway = await _open(HOTEL_PACKAGE, travelers=TravelerComposition(adults=2))
    with pytest.raises(ValueError, match="check-in"):
        session.booking_payload(CONTACT)

    await session.apply_coupon("SAVE10")
    session.select_check_in("2025-06-01")
    await _settle()
    with pytest.raises(ValueError, match="live pricing"):
        session.booking_payload(CONTACT)

    gateway.live_answers[0].set_result(
        {"available": True, "total_pricing": {"grand_total": "750.00"}}
    )
    await session.coordinator.drain()
    payload = session.booking_payload(CONTACT)
    assert payload["pricing_mode"] == "live"
    assert payload["total_price"] == "750.00"
    assert payload["coupon_code"] is None
    assert payload["check_in"] == "2025-06-01"
    assert payload["adults"] == 2


async def test_static_booking_payload_carries_coupon() -> None:
    session, _ = await _open(travelers=TravelerComposition(adults=2))
    await session.apply_coupon("SAVE10")
    session.select_check_in("2025-06-01")
    payload = session.booking_payload(CONTACT)
    assert payload["pricing_mode"] == "static"
    assert payload["total_price"] == "1620.00"
    assert payload["coupon_code"] == "SAVE10"
    assert payload["coupon_amount"] == "180.00"
