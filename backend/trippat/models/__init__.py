"""ORM models package export."""

from trippat.models.booking import Booking, BookingStatus, PaymentStatus, PricingMode
from trippat.models.package import PackageHotel, TravelPackage
from trippat.models.pricing import Coupon, DiscountType

__all__ = [
    "Booking",
    "BookingStatus",
    "Coupon",
    "DiscountType",
    "PackageHotel",
    "PaymentStatus",
    "PricingMode",
    "TravelPackage",
]
