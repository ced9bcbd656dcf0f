"""Booking submission endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trippat.api import deps
from trippat.schemas.booking import BookingCreate, BookingRead
from trippat.services import booking_service, package_service

router = APIRouter(prefix="/bookings")


@router.post(
    "",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a booking at the agreed price",
)
async def create_booking(
    payload: BookingCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> BookingRead:
    if await package_service.get_package(session, payload.package_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Package not found"
        )
    try:
        booking = await booking_service.create_booking(session, payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return BookingRead.model_validate(booking)


@router.get(
    "/{reference}", response_model=BookingRead, summary="Get a booking by reference"
)
async def get_booking(
    reference: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> BookingRead:
    booking = await booking_service.get_booking_by_reference(session, reference)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return BookingRead.model_validate(booking)
