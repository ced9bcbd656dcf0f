"""Test fixtures for the Trippat booking backend."""
from __future__ import annotations

import datetime
import os
from collections.abc import AsyncIterator
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")

from trippat.api import deps
from trippat.core.config import get_settings
from trippat.db.base import Base
from trippat.db.session import dispose_engine, get_sessionmaker
from trippat.integrations.hotel_rates import (
    HotelRateClientError,
    HotelRateQuote,
    HotelRoomRate,
)
from trippat.main import app
from trippat.models import Coupon, DiscountType, PackageHotel, TravelPackage


class FakeHotelRateClient:
    """Hotel feed double answering from a per-hotel table."""

    def __init__(self) -> None:
        self.answers: dict[str, HotelRateQuote | Exception] = {}
        self.calls: list[dict[str, Any]] = []

    def set_rate(self, hotel_code: str, room_price: str, currency: str = "USD") -> None:
        price = Decimal(room_price)
        self.answers[hotel_code] = HotelRateQuote(
            hotel_code=hotel_code,
            available=True,
            currency=currency,
            rooms=[
                HotelRoomRate(
                    name="Deluxe King",
                    meal_plan="Room Only",
                    price=price,
                    base_fare=price,
                    total_tax=Decimal("0"),
                )
            ],
        )

    def set_unavailable(self, hotel_code: str) -> None:
        self.answers[hotel_code] = HotelRateQuote(
            hotel_code=hotel_code,
            available=False,
            message="No availability found for selected dates",
        )

    def set_error(self, hotel_code: str, message: str = "Hotel feed server error") -> None:
        self.answers[hotel_code] = HotelRateClientError(message)

    async def search(self, hotel_code, *, check_in, check_out, rooms) -> HotelRateQuote:
        self.calls.append(
            {
                "hotel_code": hotel_code,
                "check_in": check_in,
                "check_out": check_out,
                "rooms": list(rooms),
            }
        )
        answer = self.answers.get(hotel_code)
        if answer is None:
            raise HotelRateClientError("Hotel feed credentials are not configured")
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def db_session(reset_database: None, db_url: str):
    """Yield a session bound to the freshly created test database."""
    async with get_sessionmaker(db_url)() as session:
        yield session


async def seed_catalog(session) -> dict[str, Any]:
    """Create the packages and coupon shared by API and service tests."""
    now = datetime.datetime.now(datetime.UTC)
    hotel_package = TravelPackage(
        title="Makkah Stay",
        slug="makkah-stay",
        categories=["religious"],
        duration_days=3,
        price_adult=Decimal("1000.00"),
        currency="SAR",
        max_travelers=6,
    )
    hotel_package.hotels = [
        PackageHotel(
            hotel_code="1402689",
            hotel_name="Haram View Hotel",
            nights=2,
            check_in_day=1,
            price_per_night=Decimal("300.00"),
            currency="SAR",
            live_pricing=True,
        )
    ]
    city_package = TravelPackage(
        title="Riyadh City Break",
        slug="riyadh-city-break",
        categories=["city"],
        duration_days=2,
        price_adult=Decimal("1000.00"),
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        currency="SAR",
    )
    coupon = Coupon(
        code="SAVE10",
        name="Ten percent off",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        minimum_amount=Decimal("500"),
        valid_from=now - datetime.timedelta(days=1),
        valid_until=now + datetime.timedelta(days=30),
        applicable_package_ids=[],
        applicable_categories=[],
        excluded_package_ids=[],
    )
    session.add_all([hotel_package, city_package, coupon])
    await session.commit()
    return {
        "hotel_package_id": hotel_package.id,
        "city_package_id": city_package.id,
        "coupon_id": coupon.id,
    }


@pytest_asyncio.fixture()
async def app_context(
    reset_database: None, db_url: str
) -> AsyncIterator[dict[str, Any]]:
    """Yield an async client, the hotel feed double and seeded catalog ids."""
    async with get_sessionmaker(db_url)() as session:
        context = await seed_catalog(session)

    hotel_client = FakeHotelRateClient()

    async def _hotel_client_override():
        yield hotel_client

    app.dependency_overrides[deps.get_hotel_rate_client] = _hotel_client_override
    context["hotel_client"] = hotel_client
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            context["client"] = client
            yield context
    finally:
        app.dependency_overrides.pop(deps.get_hotel_rate_client, None)


@pytest_asyncio.fixture()
async def catalog(db_session) -> dict[str, Any]:
    return await seed_catalog(db_session)


@pytest.fixture()
def hotel_client() -> FakeHotelRateClient:
    return FakeHotelRateClient()
