"""Package persistence helpers."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from trippat.models import PackageHotel, TravelPackage
from trippat.schemas.package import PackageCreate


async def get_package(
    session: AsyncSession, package_id: uuid.UUID
) -> TravelPackage | None:
    stmt = (
        select(TravelPackage)
        .options(selectinload(TravelPackage.hotels))
        .where(TravelPackage.id == package_id)
    )
    result = await session.execute(stmt)
    return result.scalars().unique().one_or_none()


async def create_package(
    session: AsyncSession, payload: PackageCreate
) -> TravelPackage:
    existing = await session.execute(
        select(TravelPackage.id).where(TravelPackage.slug == payload.slug)
    )
    if existing.first() is not None:
        raise ValueError("Package slug already exists")

    data = payload.model_dump(exclude={"hotels"})
    data["currency"] = data["currency"].upper()
    package = TravelPackage(**data)
    package.hotels = [
        PackageHotel(**{**hotel.model_dump(), "currency": hotel.currency.upper()})
        for hotel in payload.hotels
    ]
    session.add(package)
    await session.commit()
    created = await get_package(session, package.id)
    if created is None:
        raise ValueError("Package could not be loaded after creation")
    return created
