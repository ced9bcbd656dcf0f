"""Booking submission at the customer's agreed price."""

from __future__ import annotations

import datetime
import logging
import secrets
import uuid
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trippat.models import Booking, PricingMode
from trippat.schemas.booking import BookingCreate
from trippat.services import coupon_service, package_service
from trippat.services.date_range import resolve_checkout
from trippat.services.pricing_service import (
    PricingSchedule,
    applied_coupon,
    compute_static_quote,
)
from trippat.services.travelers import TravelerComposition

logger = logging.getLogger(__name__)

_REFERENCE_ATTEMPTS = 5
_CURRENCY_UNIT = Decimal("0.01")


def _to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_CURRENCY_UNIT, rounding=ROUND_HALF_UP)


def generate_booking_reference(today: datetime.date | None = None) -> str:
    today = today or datetime.date.today()
    return f"TRP-{today:%Y%m%d}-{secrets.token_hex(3).upper()}"


async def _unique_reference(session: AsyncSession, today: datetime.date) -> str:
    for _ in range(_REFERENCE_ATTEMPTS):
        reference = generate_booking_reference(today)
        if await get_booking_by_reference(session, reference) is None:
            return reference
    raise RuntimeError("Could not allocate a unique booking reference")


async def create_booking(
    session: AsyncSession,
    payload: BookingCreate,
    *,
    today: datetime.date | None = None,
) -> Booking:
    """Persist a booking with the total the customer was shown.

    The static quote is recomputed and stored beside the agreed total so the
    two can be reconciled later; the agreed total is never overwritten.
    """
    today = today or datetime.date.today()
    package = await package_service.get_package(session, payload.package_id)
    if package is None:
        raise ValueError("Package not found")
    if not package.availability:
        raise ValueError("Package is not available for booking")

    travelers = TravelerComposition(
        adults=payload.adults, children=payload.children, infants=payload.infants
    )
    travelers.require_quotable()
    if travelers.total > package.max_travelers:
        raise ValueError(
            f"Package allows at most {package.max_travelers} travelers"
        )
    if payload.check_in < today:
        raise ValueError("Check-in date cannot be in the past")
    check_out = resolve_checkout(payload.check_in, package.duration_days)

    schedule = PricingSchedule.from_package(package)
    server_quote = compute_static_quote(schedule, travelers)
    coupon_id: uuid.UUID | None = None
    coupon_code: str | None = None
    if payload.coupon_code:
        validation = await coupon_service.validate_coupon(
            session,
            code=payload.coupon_code,
            package_id=package.id,
            amount=server_quote.pre_coupon_total,
        )
        server_quote = compute_static_quote(
            schedule, travelers, applied_coupon(validation)
        )
        coupon_id = validation.coupon_id
        coupon_code = validation.code

    agreed_total = _to_money(payload.total_price)
    if agreed_total != server_quote.grand_total:
        level = (
            logging.WARNING
            if payload.pricing_mode is PricingMode.STATIC
            else logging.INFO
        )
        logger.log(
            level,
            "Agreed total %s %s differs from server quote %s for package %s (%s)",
            agreed_total,
            payload.currency,
            server_quote.grand_total,
            package.id,
            payload.pricing_mode.value,
        )

    booking = Booking(
        booking_reference=await _unique_reference(session, today),
        package_id=package.id,
        adults=travelers.adults,
        children=travelers.children,
        infants=travelers.infants,
        check_in=payload.check_in,
        check_out=check_out,
        total_price=agreed_total,
        server_quote_total=server_quote.grand_total,
        currency=payload.currency.upper(),
        pricing_mode=payload.pricing_mode,
        coupon_id=coupon_id,
        coupon_code=coupon_code,
        coupon_discount=_to_money(payload.coupon_amount) if coupon_id else Decimal("0.00"),
        contact_email=str(payload.contact.email),
        contact_phone=payload.contact.phone,
        special_requests=payload.special_requests,
    )
    if coupon_id is not None:
        await coupon_service.record_usage(session, coupon_id)
    session.add(booking)
    await session.commit()
    await session.refresh(booking)
    logger.info(
        "Booking %s created for package %s total %s %s",
        booking.booking_reference,
        package.id,
        booking.total_price,
        booking.currency,
    )
    return booking


async def get_booking_by_reference(
    session: AsyncSession, reference: str
) -> Booking | None:
    stmt = select(Booking).where(Booking.booking_reference == reference)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
