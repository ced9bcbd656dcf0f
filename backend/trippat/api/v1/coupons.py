"""Coupon administration and validation endpoints."""

from __future__ import annotations

import math
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from trippat.api import deps
from trippat.api.rate_limits import parse_rate, rate_dependency
from trippat.core.config import get_settings
from trippat.models import Coupon, DiscountType
from trippat.schemas.coupon import (
    CouponCreate,
    CouponDiscountRead,
    CouponPage,
    CouponRead,
    CouponStatsRead,
    CouponSummaryRead,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidateResponse,
)
from trippat.services import coupon_service
from trippat.services.coupon_service import CouponRejected

router = APIRouter(prefix="/coupons")

_settings = get_settings()
_COUPON_RATE_DEP = rate_dependency(
    parse_rate(_settings.rate_limit_coupons, fallback=(30, 60))
)
_ADMIN = [Depends(deps.require_admin)]


async def _get_coupon_or_404(session: AsyncSession, coupon_id: UUID) -> Coupon:
    coupon = await coupon_service.get_coupon(session, coupon_id)
    if coupon is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found"
        )
    return coupon


@router.post(
    "/validate",
    response_model=CouponValidateResponse,
    summary="Validate a coupon for a package amount",
    dependencies=[_COUPON_RATE_DEP],
)
async def validate_coupon(
    payload: CouponValidateRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> CouponValidateResponse:
    try:
        validation = await coupon_service.validate_coupon(
            session,
            code=payload.code,
            package_id=payload.package_id,
            amount=payload.amount,
        )
    except CouponRejected as exc:
        return CouponValidateResponse(
            success=False, reason=exc.reason.value, message=exc.message
        )
    return CouponValidateResponse(
        success=True,
        discount=CouponDiscountRead(
            type=validation.discount_type,
            value=validation.discount_value,
            amount=validation.discount_amount,
        ),
        coupon=CouponSummaryRead(
            id=validation.coupon_id, code=validation.code, name=validation.name
        ),
        final_amount=validation.final_amount,
        message="Coupon applied",
    )


@router.get(
    "", response_model=CouponPage, summary="List coupons", dependencies=_ADMIN
)
async def list_coupons(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    search: str | None = Query(default=None, max_length=100),
    is_active: bool | None = None,
    discount_type: DiscountType | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> CouponPage:
    coupons, total = await coupon_service.list_coupons(
        session,
        search=search,
        is_active=is_active,
        discount_type=discount_type,
        page=page,
        limit=limit,
    )
    return CouponPage(
        items=[CouponRead.model_validate(coupon) for coupon in coupons],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.post(
    "",
    response_model=CouponRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a coupon",
    dependencies=_ADMIN,
)
async def create_coupon(
    payload: CouponCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> CouponRead:
    try:
        coupon = await coupon_service.create_coupon(session, payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    return CouponRead.model_validate(coupon)


@router.get(
    "/{coupon_id}",
    response_model=CouponRead,
    summary="Get a coupon",
    dependencies=_ADMIN,
)
async def get_coupon(
    coupon_id: UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> CouponRead:
    return CouponRead.model_validate(await _get_coupon_or_404(session, coupon_id))


@router.patch(
    "/{coupon_id}",
    response_model=CouponRead,
    summary="Update a coupon",
    dependencies=_ADMIN,
)
async def update_coupon(
    coupon_id: UUID,
    payload: CouponUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> CouponRead:
    coupon = await _get_coupon_or_404(session, coupon_id)
    try:
        coupon = await coupon_service.update_coupon(
            session, coupon=coupon, payload=payload
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return CouponRead.model_validate(coupon)


@router.delete(
    "/{coupon_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a coupon",
    dependencies=_ADMIN,
)
async def delete_coupon(
    coupon_id: UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> Response:
    coupon = await _get_coupon_or_404(session, coupon_id)
    await coupon_service.delete_coupon(session, coupon=coupon)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{coupon_id}/stats",
    response_model=CouponStatsRead,
    summary="Coupon usage statistics",
    dependencies=_ADMIN,
)
async def coupon_stats(
    coupon_id: UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> CouponStatsRead:
    coupon = await _get_coupon_or_404(session, coupon_id)
    return CouponStatsRead(**coupon_service.coupon_stats(coupon))
