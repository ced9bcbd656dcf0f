"""Hotel rate feed client used for live package pricing."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

import httpx

from trippat.core.config import Settings, get_settings
from trippat.services.travelers import RoomOccupancy

logger = logging.getLogger(__name__)

_STATUS_MESSAGES = {
    400: "Invalid request parameters",
    401: "Invalid hotel feed credentials",
    404: "Hotel feed endpoint not found",
    429: "Hotel feed rate limit exceeded",
    500: "Hotel feed server error",
}


@dataclass(slots=True)
class HotelRoomRate:
    """Price of one room for the whole stay, taxes included."""

    name: str
    meal_plan: str
    price: Decimal
    base_fare: Decimal
    total_tax: Decimal
    booking_code: str = ""
    refundable: bool = False


@dataclass(slots=True)
class HotelRateQuote:
    """Availability answer for one hotel and stay."""

    hotel_code: str
    available: bool
    currency: str = "USD"
    rooms: list[HotelRoomRate] = field(default_factory=list)
    message: str | None = None

    @property
    def room_price(self) -> Decimal:
        return self.rooms[0].price if self.rooms else Decimal("0")


class HotelRateClientError(RuntimeError):
    """Raised when the hotel feed cannot be queried."""


class HotelRateClient:
    """Thin httpx wrapper around the hotel feed search endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        username: str | None,
        password: str | None,
        timeout: float = 30.0,
        guest_nationality: str = "AE",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._username = username
        self._password = password
        self._timeout = timeout
        self._guest_nationality = guest_nationality
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self._username and self._password)

    def _get_client(self) -> httpx.AsyncClient:
        if not self.configured:
            raise HotelRateClientError("Hotel feed credentials are not configured")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=httpx.BasicAuth(self._username or "", self._password or ""),
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def search(
        self,
        hotel_code: str,
        *,
        check_in: datetime.date,
        check_out: datetime.date,
        rooms: Sequence[RoomOccupancy],
        response_time: int = 20,
    ) -> HotelRateQuote:
        """Search live rates for a single hotel."""
        client = self._get_client()
        payload = {
            "CheckIn": check_in.isoformat(),
            "CheckOut": check_out.isoformat(),
            "HotelCodes": hotel_code,
            "GuestNationality": self._guest_nationality,
            "PaxRooms": [
                {"Adults": room.adults, "Children": room.children, "ChildrenAges": []}
                for room in rooms
            ],
            "ResponseTime": response_time,
            "IsDetailedResponse": True,
        }
        try:
            response = await client.post("/Search", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            raise HotelRateClientError(
                _STATUS_MESSAGES.get(code, f"Hotel feed error ({code})")
            ) from exc
        except (httpx.RequestError, ValueError) as exc:
            raise HotelRateClientError(f"Hotel feed request failed: {exc}") from exc

        status = data.get("Status") or {}
        if status.get("Code") != 200:
            raise HotelRateClientError(status.get("Description") or "Search failed")

        hotels = data.get("HotelResult") or []
        if not hotels:
            logger.info("No availability for hotel %s %s-%s", hotel_code, check_in, check_out)
            return HotelRateQuote(
                hotel_code=hotel_code,
                available=False,
                message="No availability found for selected dates",
            )
        return _parse_hotel(hotel_code, hotels[0])

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value or 0))


def _parse_hotel(hotel_code: str, hotel: dict[str, Any]) -> HotelRateQuote:
    currency = hotel.get("Currency") or "USD"
    rooms: list[HotelRoomRate] = []
    for room in hotel.get("Rooms") or []:
        base_fare = _decimal(room.get("TotalFare"))
        total_tax = _decimal(room.get("TotalTax"))
        service_tax = _decimal(room.get("ServiceTax"))
        names = room.get("Name") or ["Standard Room"]
        rooms.append(
            HotelRoomRate(
                name=names[0],
                meal_plan=room.get("MealType") or "Room Only",
                price=base_fare + total_tax + service_tax,
                base_fare=base_fare,
                total_tax=total_tax,
                booking_code=room.get("BookingCode") or "",
                refundable=bool(room.get("IsRefundable")),
            )
        )
    return HotelRateQuote(
        hotel_code=str(hotel.get("HotelCode") or hotel_code),
        available=bool(rooms),
        currency=currency,
        rooms=rooms,
        message=None if rooms else "No rooms returned for selected dates",
    )


def build_hotel_rate_client(settings: Settings | None = None) -> HotelRateClient:
    """Construct a client from application settings."""
    settings = settings or get_settings()
    return HotelRateClient(
        settings.hotel_feed_base_url,
        username=settings.hotel_feed_username,
        password=settings.hotel_feed_password,
        timeout=settings.hotel_feed_timeout_seconds,
        guest_nationality=settings.hotel_feed_guest_nationality,
    )
