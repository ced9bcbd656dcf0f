"""Tests for sequence-guarded live pricing."""

from __future__ import annotations

import asyncio
import datetime
from decimal import Decimal
from typing import Any

import httpx
import pytest

from trippat.services.date_range import DateRange
from trippat.services.travelers import TravelerComposition
from trippat.storefront.gateway import StorefrontApiClient, StorefrontGatewayError
from trippat.storefront.live_pricing import (
    LiveAvailable,
    LiveError,
    LivePricingCoordinator,
    LiveState,
    LiveUnavailable,
    parse_live_response,
)

pytestmark = pytest.mark.asyncio

STAY = DateRange(datetime.date(2025, 6, 1), datetime.date(2025, 6, 3))
LATER_STAY = DateRange(datetime.date(2025, 6, 10), datetime.date(2025, 6, 12))


def _available(total: str) -> dict[str, Any]:
    return {
        "available": True,
        "currency": "SAR",
        "total_pricing": {"final_total": total, "price_per_person": "100"},
        "rooms": [{"adults": 2, "children": 0}],
    }


class ControlledFetcher:
    """Fetcher whose answers are released by the test in any order."""

    def __init__(self) -> None:
        self.calls: list[tuple[TravelerComposition, DateRange]] = []
        self.pending: list[asyncio.Future] = []

    async def fetch_live_pricing(self, package_id, travelers, date_range, currency):
        self.calls.append((travelers, date_range))
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


async def _settle() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


def _coordinator(fetcher, *, has_hotels: bool = True) -> LivePricingCoordinator:
    return LivePricingCoordinator(
        fetcher, package_id="pkg-1", has_hotels=has_hotels, currency="SAR"
    )


async def test_only_latest_response_is_accepted() -> None:
    fetcher = ControlledFetcher()
    coordinator = _coordinator(fetcher)
    two_adults = TravelerComposition(adults=2)
    three_adults = TravelerComposition(adults=3)

    first = coordinator.update(two_adults, STAY)
    second = coordinator.update(three_adults, STAY)
    await _settle()
    assert (first, second) == (1, 2)
    assert len(fetcher.calls) == 2

    fetcher.pending[1].set_result(_available("900"))
    await _settle()
    assert coordinator.snapshot.seq == 2
    assert coordinator.snapshot.result == LiveAvailable(
        total=Decimal("900"),
        currency="SAR",
        price_per_person=Decimal("100"),
        rooms=({"adults": 2, "children": 0},),
    )

    # the older answer arrives last and must not overwrite the newer one
    fetcher.pending[0].set_result(_available("600"))
    await coordinator.drain()
    assert coordinator.snapshot.seq == 2
    assert coordinator.snapshot.travelers == three_adults
    assert coordinator.snapshot.result.total == Decimal("900")


async def test_superseded_response_never_publishes() -> None:
    fetcher = ControlledFetcher()
    coordinator = _coordinator(fetcher)
    published: list[int] = []
    coordinator.on_change(lambda snapshot: published.append(snapshot.seq))

    coordinator.update(TravelerComposition(adults=2), STAY)
    coordinator.update(TravelerComposition(adults=2), LATER_STAY)
    await _settle()
    fetcher.pending[0].set_result(_available("600"))
    await _settle()

    assert coordinator.snapshot.state is LiveState.REQUESTING
    assert coordinator.snapshot.date_range == LATER_STAY
    assert published == [1, 2]

    fetcher.pending[1].set_result(_available("650"))
    await coordinator.drain()
    assert published == [1, 2, 2]
    assert coordinator.snapshot.state is LiveState.FULFILLED


async def test_settle_rejects_stale_sequence() -> None:
    fetcher = ControlledFetcher()
    coordinator = _coordinator(fetcher)
    coordinator.update(TravelerComposition(adults=1), STAY)
    coordinator.update(TravelerComposition(adults=2), STAY)

    assert coordinator.settle(1, TravelerComposition(adults=1), STAY, LiveUnavailable()) is False
    assert coordinator.settle(2, TravelerComposition(adults=2), STAY, LiveUnavailable()) is True
    assert coordinator.snapshot.state is LiveState.FAILED
    await coordinator.close()


async def test_incomplete_dates_or_no_hotels_stay_idle() -> None:
    fetcher = ControlledFetcher()
    coordinator = _coordinator(fetcher)
    assert coordinator.update(TravelerComposition(adults=2), DateRange()) is None
    assert coordinator.snapshot.state is LiveState.IDLE
    assert coordinator.latest_seq == 1

    no_hotels = _coordinator(fetcher, has_hotels=False)
    assert no_hotels.update(TravelerComposition(adults=2), STAY) is None
    await _settle()
    assert fetcher.calls == []


async def test_going_idle_discards_in_flight_answer() -> None:
    fetcher = ControlledFetcher()
    coordinator = _coordinator(fetcher)
    coordinator.update(TravelerComposition(adults=2), STAY)
    await _settle()
    coordinator.update(TravelerComposition(adults=2), DateRange())

    fetcher.pending[0].set_result(_available("600"))
    await coordinator.drain()
    assert coordinator.snapshot.state is LiveState.IDLE
    assert coordinator.snapshot.result is None


async def test_gateway_failure_becomes_live_error() -> None:
    class FailingFetcher:
        async def fetch_live_pricing(self, *args):
            raise StorefrontGatewayError("connection refused")

    coordinator = _coordinator(FailingFetcher())
    coordinator.update(TravelerComposition(adults=2), STAY)
    await coordinator.drain()
    assert coordinator.snapshot.state is LiveState.FAILED
    assert coordinator.snapshot.result == LiveError()


@pytest.mark.parametrize(
    ("status_code", "body"),
    [
        (200, {"text": "<html>oops</html>"}),
        (200, {"json": ["available", True]}),
        (429, {"json": {"detail": "Too Many Requests"}}),
        (400, {"json": {"detail": "Check-out date must be after check-in date"}}),
        (422, {"json": {"detail": [{"msg": "field required"}]}}),
    ],
)
async def test_unusable_http_answer_settles_as_live_error(status_code, body) -> None:
    client = StorefrontApiClient(
        "http://booking.test/api/v1/",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(status_code, **body)
        ),
    )
    coordinator = _coordinator(client)
    coordinator.update(TravelerComposition(adults=2), STAY)
    await coordinator.drain()
    await client.aclose()

    assert coordinator.pending == 0
    assert coordinator.snapshot.state is LiveState.FAILED
    assert coordinator.snapshot.result == LiveError()


async def test_available_false_answer_is_unavailable_not_error() -> None:
    client = StorefrontApiClient(
        "http://booking.test/api/v1/",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"available": False})
        ),
    )
    coordinator = _coordinator(client)
    coordinator.update(TravelerComposition(adults=2), STAY)
    await coordinator.drain()
    await client.aclose()

    assert coordinator.snapshot.state is LiveState.FAILED
    assert coordinator.snapshot.result == LiveUnavailable()


async def test_close_cancels_requests_and_rejects_updates() -> None:
    fetcher = ControlledFetcher()
    coordinator = _coordinator(fetcher)
    coordinator.update(TravelerComposition(adults=2), STAY)
    await _settle()
    await coordinator.close()
    assert coordinator.pending == 0
    assert fetcher.pending[0].cancelled()
    with pytest.raises(RuntimeError):
        coordinator.update(TravelerComposition(adults=2), STAY)


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (
            {"available": True, "total_pricing": {"grand_total": "1200"}},
            LiveAvailable(total=Decimal("1200"), currency="SAR"),
        ),
        (
            {
                "available": True,
                "currency": "USD",
                "total_pricing": {"final_total": "300", "grand_total": "320"},
            },
            LiveAvailable(total=Decimal("300"), currency="USD"),
        ),
        ({"available": True, "total_pricing": {"final_total": 0}}, LiveUnavailable()),
        ({"available": True, "total_pricing": None}, LiveUnavailable()),
        (
            {"available": False, "message": "Sold out"},
            LiveUnavailable("Sold out"),
        ),
        (["available", True], LiveUnavailable()),
        ("<html>oops</html>", LiveUnavailable()),
        ({"available": True, "total_pricing": {"final_total": "NaN"}}, LiveUnavailable()),
        (
            {"available": True, "total_pricing": {"final_total": "90"}, "rooms": 2},
            LiveAvailable(total=Decimal("90"), currency="SAR"),
        ),
    ],
)
async def test_parse_live_response(data, expected) -> None:
    assert parse_live_response(data, "SAR") == expected
