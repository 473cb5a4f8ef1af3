"""Coupon service factory.

Provides get_coupon_service() / set_coupon_service() to swap implementations.
Defaults to InMemoryCouponService.
"""

from bookorders.coupons.memory_adapter import InMemoryCouponService
from bookorders.coupons.port import CouponService

_current_service: CouponService | None = None


def get_coupon_service() -> CouponService:
    global _current_service
    if _current_service is None:
        _current_service = InMemoryCouponService()
    return _current_service


def set_coupon_service(service: CouponService) -> None:
    """Override the active coupon service (useful for tests)."""
    global _current_service
    _current_service = service


def reset_coupon_service() -> None:
    global _current_service
    _current_service = None
