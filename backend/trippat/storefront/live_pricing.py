"""Live hotel-inclusive pricing for an open package view.

Every change of travelers or dates issues a new request tagged with a
monotonically increasing sequence number. A settling response is applied
only when its number is still the latest issued; older responses are
dropped even if they arrive last. In-flight requests are never aborted.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Protocol

from trippat.services.date_range import DateRange
from trippat.services.travelers import TravelerComposition
from trippat.storefront.gateway import StorefrontGatewayError

logger = logging.getLogger(__name__)

NO_AVAILABILITY_MESSAGE = "No rooms available for the selected dates"
NETWORK_ERROR_MESSAGE = "Couldn't reach pricing service"


class LiveState(str, enum.Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    FULFILLED = "fulfilled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class LiveAvailable:
    total: Decimal
    currency: str
    price_per_person: Decimal | None = None
    rooms: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True, slots=True)
class LiveUnavailable:
    reason: str = NO_AVAILABILITY_MESSAGE


@dataclass(frozen=True, slots=True)
class LiveError:
    reason: str = NETWORK_ERROR_MESSAGE


LiveResult = LiveAvailable | LiveUnavailable | LiveError


@dataclass(frozen=True, slots=True)
class LivePricingSnapshot:
    """What the coordinator currently exposes for display."""

    seq: int = 0
    state: LiveState = LiveState.IDLE
    travelers: TravelerComposition | None = None
    date_range: DateRange | None = None
    result: LiveResult | None = None

    @property
    def is_fulfilled(self) -> bool:
        return self.state is LiveState.FULFILLED and isinstance(
            self.result, LiveAvailable
        )

    def matches(self, travelers: TravelerComposition, date_range: DateRange) -> bool:
        return self.travelers == travelers and self.date_range == date_range


class LivePricingFetcher(Protocol):
    async def fetch_live_pricing(
        self,
        package_id: uuid.UUID | str,
        travelers: TravelerComposition,
        date_range: DateRange,
        currency: str,
    ) -> dict[str, Any]: ...


def _decimal_or_none(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_live_response(data: Any, currency: str) -> LiveResult:
    """Map a package pricing response to a live result.

    ``final_total`` wins over ``grand_total``. A missing or non-positive total
    is treated as unavailable rather than as a free stay, as is a body that is
    not a JSON object.
    """
    if not isinstance(data, dict):
        return LiveUnavailable(NO_AVAILABILITY_MESSAGE)
    if not data.get("available"):
        return LiveUnavailable(data.get("message") or NO_AVAILABILITY_MESSAGE)
    pricing = data.get("total_pricing")
    if not isinstance(pricing, dict):
        pricing = {}
    total = _decimal_or_none(pricing.get("final_total"))
    if total is None:
        total = _decimal_or_none(pricing.get("grand_total"))
    if total is None or total <= 0:
        return LiveUnavailable(NO_AVAILABILITY_MESSAGE)
    rooms = data.get("rooms")
    return LiveAvailable(
        total=total,
        currency=data.get("currency") or currency,
        price_per_person=_decimal_or_none(pricing.get("price_per_person")),
        rooms=tuple(rooms) if isinstance(rooms, list) else (),
    )


class LivePricingCoordinator:
    """Owns the latest accepted live pricing snapshot for one package view."""

    def __init__(
        self,
        fetcher: LivePricingFetcher,
        *,
        package_id: uuid.UUID | str,
        has_hotels: bool,
        currency: str,
    ) -> None:
        self._fetcher = fetcher
        self._package_id = package_id
        self._has_hotels = has_hotels
        self._currency = currency
        self._latest_seq = 0
        self._snapshot = LivePricingSnapshot()
        self._tasks: set[asyncio.Task[None]] = set()
        self._listeners: list[Callable[[LivePricingSnapshot], None]] = []
        self._closed = False

    @property
    def snapshot(self) -> LivePricingSnapshot:
        return self._snapshot

    @property
    def latest_seq(self) -> int:
        return self._latest_seq

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def on_change(self, listener: Callable[[LivePricingSnapshot], None]) -> None:
        self._listeners.append(listener)

    def update(
        self, travelers: TravelerComposition, date_range: DateRange
    ) -> int | None:
        """React to new inputs; return the issued sequence number, if any.

        Inputs that cannot be live priced move the coordinator back to idle.
        Either way the sequence is bumped so any in-flight answer is ignored.
        """
        if self._closed:
            raise RuntimeError("Pricing session is closed")
        self._latest_seq += 1
        seq = self._latest_seq
        if not self._has_hotels or not date_range.is_complete:
            self._publish(LivePricingSnapshot(seq=seq))
            return None

        self._publish(
            LivePricingSnapshot(
                seq=seq,
                state=LiveState.REQUESTING,
                travelers=travelers,
                date_range=date_range,
            )
        )
        task = asyncio.get_running_loop().create_task(
            self._request(seq, travelers, date_range)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return seq

    def reset(self) -> None:
        self._latest_seq += 1
        self._publish(LivePricingSnapshot(seq=self._latest_seq))

    async def _request(
        self, seq: int, travelers: TravelerComposition, date_range: DateRange
    ) -> None:
        try:
            data = await self._fetcher.fetch_live_pricing(
                self._package_id, travelers, date_range, self._currency
            )
        except StorefrontGatewayError as exc:
            logger.warning("Live pricing request %s failed: %s", seq, exc)
            result: LiveResult = LiveError(NETWORK_ERROR_MESSAGE)
        else:
            result = parse_live_response(data, self._currency)
        self.settle(seq, travelers, date_range, result)

    def settle(
        self,
        seq: int,
        travelers: TravelerComposition,
        date_range: DateRange,
        result: LiveResult,
    ) -> bool:
        """Apply ``result`` if ``seq`` is still the latest issued request."""
        if seq != self._latest_seq:
            logger.debug(
                "Discarding superseded live pricing response %s (latest %s)",
                seq,
                self._latest_seq,
            )
            return False
        state = (
            LiveState.FULFILLED if isinstance(result, LiveAvailable) else LiveState.FAILED
        )
        if state is LiveState.FAILED:
            logger.warning(
                "Live pricing for package %s fell back to static quote: %s",
                self._package_id,
                getattr(result, "reason", ""),
            )
        self._publish(
            LivePricingSnapshot(
                seq=seq,
                state=state,
                travelers=travelers,
                date_range=date_range,
                result=result,
            )
        )
        return True

    def _publish(self, snapshot: LivePricingSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    async def drain(self) -> None:
        """Wait for every request issued so far to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        """Discard outstanding requests; the coordinator cannot be reused."""
        self._closed = True
        self._latest_seq += 1
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()
