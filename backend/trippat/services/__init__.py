"""Service layer for pricing, coupons and bookings."""
