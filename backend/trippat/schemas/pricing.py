"""Pricing schema definitions."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class TravelersPayload(BaseModel):
    """Traveler counts; the one-adult minimum is enforced by the services."""

    adults: int = Field(default=1, ge=0)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)


class PricingQuoteRequest(BaseModel):
    """Input payload for a static package quote."""

    package_id: uuid.UUID
    travelers: TravelersPayload = Field(default_factory=TravelersPayload)
    coupon_code: str | None = Field(default=None, max_length=20)


class PricingLineRead(BaseModel):
    """Individual line item within a pricing quote."""

    description: str
    quantity: int
    unit_price: Decimal | None
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class PricingQuoteRead(BaseModel):
    """Static quote breakdown."""

    currency: str
    items: list[PricingLineRead]
    subtotal: Decimal
    discount_amount: Decimal
    pre_coupon_total: Decimal
    coupon_amount: Decimal
    grand_total: Decimal
    coupon_applied: bool
    coupon_code: str | None

    model_config = ConfigDict(from_attributes=True)


class PackagePricingRequest(BaseModel):
    """Live pricing request for a package stay."""

    check_in: datetime.date
    check_out: datetime.date
    travelers: TravelersPayload = Field(default_factory=TravelersPayload)
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class TotalPricingRead(BaseModel):
    package_cost: Decimal
    hotel_cost: Decimal
    grand_total: Decimal
    discount_amount: Decimal
    final_total: Decimal
    price_per_person: Decimal


class RoomRead(BaseModel):
    adults: int
    children: int
    price: Decimal


class HotelPricingRead(BaseModel):
    hotel_code: str
    hotel_name: str
    nights: int
    check_in: datetime.date
    check_out: datetime.date
    live_pricing: bool
    rooms_count: int
    price_per_night: Decimal
    total_price: Decimal
    currency: str


class PackagePricingRead(BaseModel):
    """Hotel-inclusive pricing breakdown."""

    available: bool
    package_id: uuid.UUID
    currency: str
    pricing_mode: str
    total_pricing: TotalPricingRead | None = None
    rooms: list[RoomRead] = Field(default_factory=list)
    hotels: list[HotelPricingRead] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    message: str | None = None
