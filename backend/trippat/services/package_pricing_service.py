"""Hotel-inclusive package pricing served to the storefront."""

from __future__ import annotations

import datetime
import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Protocol, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trippat.integrations.hotel_rates import HotelRateClientError, HotelRateQuote
from trippat.models import PackageHotel, TravelPackage
from trippat.services import package_service
from trippat.services.date_range import DateRange, hotel_stay_dates, nights_between
from trippat.services.pricing_service import (
    DiscountKind,
    PriceQuote,
    PricingSchedule,
    compute_static_quote,
)
from trippat.services.travelers import (
    RoomOccupancy,
    TravelerComposition,
    rooms_needed,
)

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
NO_ROOMS_MESSAGE = "No rooms available for the selected dates"


class HotelRateSource(Protocol):
    async def search(
        self,
        hotel_code: str,
        *,
        check_in: datetime.date,
        check_out: datetime.date,
        rooms: Sequence[RoomOccupancy],
    ) -> HotelRateQuote: ...


def _to_money(value: Decimal | int | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_str(value: Decimal) -> str:
    return f"{_to_money(value):.2f}"


@dataclass(slots=True)
class HotelPricing:
    """Priced hotel component of a package."""

    hotel_code: str
    hotel_name: str
    nights: int
    check_in: datetime.date
    check_out: datetime.date
    live_pricing: bool
    rooms_count: int
    price_per_night: Decimal
    total_price: Decimal
    currency: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "hotel_code": self.hotel_code,
            "hotel_name": self.hotel_name,
            "nights": self.nights,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "live_pricing": self.live_pricing,
            "rooms_count": self.rooms_count,
            "price_per_night": _to_str(self.price_per_night),
            "total_price": _to_str(self.total_price),
            "currency": self.currency,
        }


@dataclass(slots=True)
class PackagePricingBreakdown:
    """Response of the detailed package pricing endpoint."""

    available: bool
    package_id: UUID
    currency: str
    pricing_mode: str = "traditional"
    package_cost: Decimal = ZERO
    hotel_cost: Decimal = ZERO
    grand_total: Decimal = ZERO
    discount_amount: Decimal = ZERO
    final_total: Decimal = ZERO
    price_per_person: Decimal = ZERO
    rooms: list[dict[str, Any]] = field(default_factory=list)
    hotels: list[HotelPricing] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        total_pricing = None
        if self.available:
            total_pricing = {
                "package_cost": _to_str(self.package_cost),
                "hotel_cost": _to_str(self.hotel_cost),
                "grand_total": _to_str(self.grand_total),
                "discount_amount": _to_str(self.discount_amount),
                "final_total": _to_str(self.final_total),
                "price_per_person": _to_str(self.price_per_person),
            }
        return {
            "available": self.available,
            "package_id": str(self.package_id),
            "currency": self.currency,
            "pricing_mode": self.pricing_mode,
            "total_pricing": total_pricing,
            "rooms": self.rooms,
            "hotels": [hotel.to_dict() for hotel in self.hotels],
            "errors": self.errors,
            "message": self.message,
        }


class _NoAvailability(Exception):
    def __init__(self, hotel: PackageHotel, message: str | None) -> None:
        super().__init__(message or NO_ROOMS_MESSAGE)
        self.hotel = hotel


def convert_currency(
    amount: Decimal, source: str, target: str, rates: Mapping[str, Decimal]
) -> Decimal:
    """Convert between currencies using rates quoted against USD."""
    source = source.upper()
    target = target.upper()
    if source == target:
        return _to_money(amount)
    try:
        source_rate = Decimal(rates[source])
        target_rate = Decimal(rates[target])
    except KeyError as exc:
        raise ValueError(f"No exchange rate configured for {exc.args[0]}") from exc
    return _to_money(Decimal(amount) / source_rate * target_rate)


def validate_request(
    travelers: TravelerComposition,
    date_range: DateRange,
    *,
    today: datetime.date,
) -> None:
    travelers.require_quotable()
    date_range.validate()
    if date_range.check_in < today:  # type: ignore[operator]
        raise ValueError("Check-in date cannot be in the past")


async def calculate_package_pricing(
    session: AsyncSession,
    *,
    package_id: UUID,
    travelers: TravelerComposition,
    date_range: DateRange,
    currency: str,
    hotel_client: HotelRateSource,
    rates: Mapping[str, Decimal],
    today: datetime.date | None = None,
) -> PackagePricingBreakdown:
    """Price a package with its hotel components for the given stay."""
    validate_request(travelers, date_range, today=today or datetime.date.today())
    currency = currency.upper()
    if currency not in rates:
        raise ValueError(f"Unsupported currency {currency}")

    package = await package_service.get_package(session, package_id)
    if package is None:
        raise ValueError("Package not found")

    breakdown = PackagePricingBreakdown(
        available=True, package_id=package.id, currency=currency
    )
    if not package.has_hotels:
        breakdown.available = False
        breakdown.message = "Package has no hotel components for live pricing"
        return breakdown

    rooms = rooms_needed(travelers)
    try:
        hotels = await _price_hotels(
            package, date_range, rooms, currency, hotel_client, rates, breakdown.errors
        )
    except _NoAvailability as exc:
        logger.info(
            "Package %s unavailable: hotel %s has no rooms %s-%s",
            package.id,
            exc.hotel.hotel_code,
            date_range.check_in,
            date_range.check_out,
        )
        breakdown.available = False
        breakdown.message = NO_ROOMS_MESSAGE
        return breakdown

    breakdown.hotels = hotels
    schedule = PricingSchedule.from_package(package)
    static_quote = compute_static_quote(schedule, travelers)
    hotel_cost = _to_money(sum((hotel.total_price for hotel in hotels), ZERO))

    if any(hotel.live_pricing for hotel in hotels) and hotel_cost > 0:
        breakdown.pricing_mode = "live_hotel"
        breakdown.package_cost = ZERO
        grand_total = hotel_cost
    else:
        breakdown.pricing_mode = "traditional"
        breakdown.package_cost = convert_currency(
            static_quote.subtotal, package.currency, currency, rates
        )
        grand_total = breakdown.package_cost + hotel_cost

    breakdown.hotel_cost = hotel_cost
    breakdown.grand_total = _to_money(grand_total)
    breakdown.discount_amount = _package_discount(
        schedule, static_quote, breakdown, package.currency, rates
    )
    breakdown.final_total = _to_money(
        max(ZERO, breakdown.grand_total - breakdown.discount_amount)
    )
    breakdown.price_per_person = Decimal(
        math.ceil(breakdown.final_total / travelers.total)
    )
    room_price = _to_money(hotel_cost / len(rooms)) if rooms else ZERO
    breakdown.rooms = [
        {"adults": room.adults, "children": room.children, "price": _to_str(room_price)}
        for room in rooms
    ]
    return breakdown


async def _price_hotels(
    package: TravelPackage,
    date_range: DateRange,
    rooms: list[RoomOccupancy],
    currency: str,
    hotel_client: HotelRateSource,
    rates: Mapping[str, Decimal],
    errors: list[str],
) -> list[HotelPricing]:
    priced: list[HotelPricing] = []
    for hotel in package.hotels:
        stay = hotel_stay_dates(date_range.check_in, hotel.check_in_day, hotel.nights)  # type: ignore[arg-type]
        live = None
        if hotel.live_pricing:
            live = await _live_hotel_pricing(
                hotel, stay, rooms, currency, hotel_client, rates, errors
            )
        priced.append(live or _static_hotel_pricing(hotel, stay, rooms, currency, rates))
    return priced


async def _live_hotel_pricing(
    hotel: PackageHotel,
    stay: DateRange,
    rooms: list[RoomOccupancy],
    currency: str,
    hotel_client: HotelRateSource,
    rates: Mapping[str, Decimal],
    errors: list[str],
) -> HotelPricing | None:
    try:
        quote = await hotel_client.search(
            hotel.hotel_code,
            check_in=stay.check_in,  # type: ignore[arg-type]
            check_out=stay.check_out,  # type: ignore[arg-type]
            rooms=rooms,
        )
        if not quote.available:
            raise _NoAvailability(hotel, quote.message)
        total = convert_currency(
            quote.room_price * len(rooms), quote.currency, currency, rates
        )
    except (HotelRateClientError, ValueError) as exc:
        logger.warning(
            "Live pricing failed for hotel %s, using static rate: %s",
            hotel.hotel_code,
            exc,
        )
        errors.append(f"Live pricing unavailable for {hotel.hotel_name}: {exc}")
        return None

    nights = nights_between(stay.check_in, stay.check_out)  # type: ignore[arg-type]
    return HotelPricing(
        hotel_code=hotel.hotel_code,
        hotel_name=hotel.hotel_name,
        nights=nights,
        check_in=stay.check_in,  # type: ignore[arg-type]
        check_out=stay.check_out,  # type: ignore[arg-type]
        live_pricing=True,
        rooms_count=len(rooms),
        price_per_night=_to_money(total / nights / len(rooms)),
        total_price=total,
        currency=currency,
    )


def _static_hotel_pricing(
    hotel: PackageHotel,
    stay: DateRange,
    rooms: list[RoomOccupancy],
    currency: str,
    rates: Mapping[str, Decimal],
) -> HotelPricing:
    nightly = convert_currency(hotel.price_per_night, hotel.currency, currency, rates)
    return HotelPricing(
        hotel_code=hotel.hotel_code,
        hotel_name=hotel.hotel_name,
        nights=hotel.nights,
        check_in=stay.check_in,  # type: ignore[arg-type]
        check_out=stay.check_out,  # type: ignore[arg-type]
        live_pricing=False,
        rooms_count=len(rooms),
        price_per_night=nightly,
        total_price=_to_money(nightly * hotel.nights * len(rooms)),
        currency=currency,
    )


def _package_discount(
    schedule: PricingSchedule,
    static_quote: PriceQuote,
    breakdown: PackagePricingBreakdown,
    package_currency: str,
    rates: Mapping[str, Decimal],
) -> Decimal:
    """Package discount with the static quote's precedence.

    A sale price reprices the package itself, so it has nothing to discount
    once a live hotel total replaces the package cost. Percentage and fixed
    discounts apply to the grand total.
    """
    policy = schedule.discount
    if policy.kind is DiscountKind.SALE_PRICE:
        if breakdown.pricing_mode != "traditional":
            return ZERO
        return convert_currency(
            static_quote.discount_amount, package_currency, breakdown.currency, rates
        )
    if policy.kind is DiscountKind.PERCENTAGE:
        return _to_money(breakdown.grand_total * policy.value / Decimal("100"))
    if policy.kind is DiscountKind.FIXED:
        value = convert_currency(
            policy.value, package_currency, breakdown.currency, rates
        )
        return _to_money(min(value, breakdown.grand_total))
    return ZERO
