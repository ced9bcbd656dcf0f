"""HTTP client the storefront uses to reach the booking API."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx

from trippat.core.config import Settings, get_settings
from trippat.models import DiscountType
from trippat.services.coupon_service import CouponRejected, RejectionReason
from trippat.services.date_range import DateRange
from trippat.services.travelers import TravelerComposition

logger = logging.getLogger(__name__)

NETWORK_FAILURE_MESSAGE = "Couldn't reach the pricing service. Please try again."


class StorefrontGatewayError(RuntimeError):
    """Raised when the booking API cannot be reached or gives an unusable answer."""


@dataclass(frozen=True, slots=True)
class ValidatedCoupon:
    """Server-computed coupon discount for a specific amount."""

    coupon_id: str | None
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal


class StorefrontApiClient:
    """Async client for the package, pricing, coupon and booking endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self, method: str, url: str, *, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.RequestError as exc:
            logger.warning("Storefront request %s %s failed: %s", method, url, exc)
            raise StorefrontGatewayError(NETWORK_FAILURE_MESSAGE) from exc
        if response.status_code >= 500:
            logger.warning(
                "Storefront request %s %s returned %s", method, url, response.status_code
            )
            raise StorefrontGatewayError(NETWORK_FAILURE_MESSAGE)
        return response

    @staticmethod
    def _json_object(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            logger.warning("Storefront response from %s is not JSON", response.url)
            raise StorefrontGatewayError(NETWORK_FAILURE_MESSAGE) from exc
        if not isinstance(data, dict):
            logger.warning("Storefront response from %s is not an object", response.url)
            raise StorefrontGatewayError(NETWORK_FAILURE_MESSAGE)
        return data

    async def fetch_package(self, package_id: uuid.UUID | str) -> dict[str, Any]:
        response = await self._request("GET", f"/packages/{package_id}")
        if response.status_code == 404:
            raise ValueError("Package not found")
        response.raise_for_status()
        return self._json_object(response)

    async def validate_coupon(
        self, code: str, package_id: uuid.UUID | str, amount: Decimal
    ) -> ValidatedCoupon:
        """Validate ``code`` against ``amount``; rejections raise ``CouponRejected``."""
        payload = {"code": code, "package_id": str(package_id), "amount": str(amount)}
        try:
            response = await self._request("POST", "/coupons/validate", json=payload)
            data = self._json_object(response) if response.content else {}
        except StorefrontGatewayError as exc:
            raise CouponRejected(RejectionReason.NETWORK_FAILURE, str(exc)) from exc

        if response.status_code != 200 or not data.get("success"):
            raise CouponRejected(
                _rejection_reason(data.get("reason")),
                data.get("message") or "Coupon could not be applied",
            )
        discount = data["discount"]
        coupon = data.get("coupon") or {}
        return ValidatedCoupon(
            coupon_id=coupon.get("id"),
            code=coupon.get("code") or code.strip().upper(),
            discount_type=DiscountType(discount["type"]),
            discount_value=Decimal(str(discount["value"])),
            discount_amount=Decimal(str(discount["amount"])),
        )

    async def fetch_live_pricing(
        self,
        package_id: uuid.UUID | str,
        travelers: TravelerComposition,
        date_range: DateRange,
        currency: str,
    ) -> dict[str, Any]:
        """Request hotel-inclusive pricing.

        Only a 200 answer is returned; any other status or a body that is not a
        JSON object raises ``StorefrontGatewayError``.
        """
        payload = {
            "check_in": date_range.check_in.isoformat() if date_range.check_in else None,
            "check_out": date_range.check_out.isoformat() if date_range.check_out else None,
            "travelers": travelers.as_dict(),
            "currency": currency,
        }
        response = await self._request(
            "POST", f"/package-pricing/{package_id}/detailed", json=payload
        )
        if response.status_code != 200:
            logger.warning(
                "Live pricing for %s rejected with %s: %s",
                package_id,
                response.status_code,
                _error_detail(response),
            )
            raise StorefrontGatewayError(NETWORK_FAILURE_MESSAGE)
        return self._json_object(response)

    async def submit_booking(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", "/bookings", json=payload)
        if response.status_code >= 400:
            raise ValueError(_error_detail(response))
        return self._json_object(response)

    async def aclose(self) -> None:
        await self._client.aclose()


def _rejection_reason(raw: Any) -> RejectionReason:
    try:
        return RejectionReason(raw)
    except ValueError:
        return RejectionReason.NOT_FOUND


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    detail = data.get("detail") if isinstance(data, dict) else None
    if isinstance(detail, str):
        return detail
    return f"Pricing request rejected ({response.status_code})"


def build_storefront_client(settings: Settings | None = None) -> StorefrontApiClient:
    settings = settings or get_settings()
    return StorefrontApiClient(
        settings.storefront_api_base_url,
        timeout=settings.storefront_timeout_seconds,
    )
