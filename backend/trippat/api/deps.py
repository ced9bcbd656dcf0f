"""Common API dependencies."""

from __future__ import annotations

import hmac
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trippat.core.config import get_settings
from trippat.db.session import get_session
from trippat.integrations.hotel_rates import HotelRateClient, build_hotel_rate_client


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


async def get_hotel_rate_client() -> AsyncGenerator[HotelRateClient, None]:
    """Provide a hotel feed client closed after the request."""
    client = build_hotel_rate_client()
    try:
        yield client
    finally:
        await client.aclose()


async def require_admin(
    x_admin_token: Annotated[str | None, Header(alias="X-Admin-Token")] = None,
) -> None:
    """Reject requests without the configured admin token."""
    expected = get_settings().admin_api_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin API is not enabled",
        )
    if x_admin_token is None or not hmac.compare_digest(
        x_admin_token.encode(), expected.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
        )
