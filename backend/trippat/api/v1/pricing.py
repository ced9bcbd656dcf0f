"""Pricing-related API endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trippat.api import deps
from trippat.api.rate_limits import parse_rate, rate_dependency
from trippat.core.config import get_settings
from trippat.integrations.hotel_rates import HotelRateClient
from trippat.schemas.pricing import (
    PackagePricingRead,
    PackagePricingRequest,
    PricingQuoteRead,
    PricingQuoteRequest,
)
from trippat.services import package_pricing_service, package_service, pricing_service
from trippat.services.date_range import DateRange
from trippat.services.travelers import TravelerComposition

router = APIRouter(prefix="/pricing")
package_pricing_router = APIRouter(prefix="/package-pricing")

_settings = get_settings()
_PRICING_RATE_DEP = rate_dependency(
    parse_rate(_settings.rate_limit_pricing, fallback=(20, 60))
)


async def _require_package(session: AsyncSession, package_id: UUID) -> None:
    if await package_service.get_package(session, package_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Package not found"
        )


@router.post(
    "/quote",
    response_model=PricingQuoteRead,
    summary="Quote static package pricing",
    dependencies=[_PRICING_RATE_DEP],
)
async def quote_package_pricing(
    payload: PricingQuoteRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> PricingQuoteRead:
    await _require_package(session, payload.package_id)
    try:
        quote = await pricing_service.quote_package(
            session,
            package_id=payload.package_id,
            travelers=TravelerComposition(**payload.travelers.model_dump()),
            coupon_code=payload.coupon_code,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return PricingQuoteRead.model_validate(quote)


@package_pricing_router.post(
    "/{package_id}/detailed",
    response_model=PackagePricingRead,
    summary="Hotel-inclusive package pricing",
    dependencies=[_PRICING_RATE_DEP],
)
async def detailed_package_pricing(
    package_id: UUID,
    payload: PackagePricingRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    hotel_client: Annotated[HotelRateClient, Depends(deps.get_hotel_rate_client)],
) -> PackagePricingRead:
    await _require_package(session, package_id)
    settings = get_settings()
    try:
        breakdown = await package_pricing_service.calculate_package_pricing(
            session,
            package_id=package_id,
            travelers=TravelerComposition(**payload.travelers.model_dump()),
            date_range=DateRange(payload.check_in, payload.check_out),
            currency=payload.currency or settings.default_currency,
            hotel_client=hotel_client,
            rates=settings.fx_rates,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return PackagePricingRead.model_validate(breakdown.to_dict())
