"""Package schema definitions."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from trippat.models import DiscountType


class PackageHotelBase(BaseModel):
    hotel_code: str = Field(min_length=1, max_length=64)
    hotel_name: str = Field(min_length=1, max_length=255)
    nights: int = Field(default=1, ge=1)
    check_in_day: int = Field(default=1, ge=1)
    price_per_night: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="SAR", min_length=3, max_length=3)
    live_pricing: bool = False


class PackageHotelCreate(PackageHotelBase):
    """Hotel component supplied with a new package."""


class PackageHotelRead(PackageHotelBase):
    id: uuid.UUID

    model_config = ConfigDict(from_attributes=True)


class PackageBase(BaseModel):
    """Pricing-relevant package fields."""

    title: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    categories: list[str] = Field(default_factory=list)
    duration_days: int = Field(default=1, ge=1)
    price_adult: Decimal = Field(ge=0)
    price_child: Decimal | None = Field(default=None, ge=0)
    price_infant: Decimal | None = Field(default=None, ge=0)
    sale_price: Decimal | None = Field(default=None, ge=0)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="SAR", min_length=3, max_length=3)
    availability: bool = True
    max_travelers: int = Field(default=20, ge=1)


class PackageCreate(PackageBase):
    """Payload for creating a package with its hotel components."""

    hotels: list[PackageHotelCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_discount(self) -> "PackageCreate":
        if (
            self.discount_type is DiscountType.PERCENTAGE
            and self.discount_value is not None
            and self.discount_value > Decimal("100")
        ):
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class PackageRead(PackageBase):
    id: uuid.UUID
    hotels: list[PackageHotelRead]
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)
