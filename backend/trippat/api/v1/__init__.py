"""Versioned API router."""

from fastapi import APIRouter

from . import bookings, coupons, health, packages, pricing

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(packages.router, tags=["packages"])
router.include_router(pricing.router, tags=["pricing"])
router.include_router(pricing.package_pricing_router, tags=["pricing"])
router.include_router(coupons.router, tags=["coupons"])
router.include_router(bookings.router, tags=["bookings"])

__all__ = ["router"]
