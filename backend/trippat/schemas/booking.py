"""Booking schema definitions."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from trippat.models import BookingStatus, PaymentStatus, PricingMode


class BookingContact(BaseModel):
    email: EmailStr
    phone: str = Field(min_length=5, max_length=64)


class BookingCreate(BaseModel):
    """Booking submission carrying the total the customer agreed to."""

    package_id: uuid.UUID
    adults: int = Field(ge=1)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)
    check_in: datetime.date
    total_price: Decimal = Field(ge=0)
    currency: str = Field(default="SAR", min_length=3, max_length=3)
    pricing_mode: PricingMode = PricingMode.STATIC
    coupon_code: str | None = Field(default=None, max_length=20)
    coupon_amount: Decimal = Field(default=Decimal("0"), ge=0)
    contact: BookingContact
    special_requests: str | None = Field(default=None, max_length=2000)


class BookingRead(BaseModel):
    id: uuid.UUID
    booking_reference: str
    package_id: uuid.UUID
    adults: int
    children: int
    infants: int
    check_in: datetime.date
    check_out: datetime.date
    total_price: Decimal
    server_quote_total: Decimal
    currency: str
    pricing_mode: PricingMode
    coupon_code: str | None
    coupon_discount: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    contact_email: str
    contact_phone: str
    special_requests: str | None
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)
