"""Package endpoints needed by the booking flow."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trippat.api import deps
from trippat.schemas.package import PackageCreate, PackageRead
from trippat.services import package_service

router = APIRouter(prefix="/packages")


@router.post(
    "",
    response_model=PackageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a package",
    dependencies=[Depends(deps.require_admin)],
)
async def create_package(
    payload: PackageCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> PackageRead:
    try:
        package = await package_service.create_package(session, payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    return PackageRead.model_validate(package)


@router.get("/{package_id}", response_model=PackageRead, summary="Get a package")
async def get_package(
    package_id: UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> PackageRead:
    package = await package_service.get_package(session, package_id)
    if package is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Package not found"
        )
    return PackageRead.model_validate(package)
