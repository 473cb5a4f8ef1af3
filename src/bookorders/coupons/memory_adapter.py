"""In-memory coupon service for development and testing.

Supports percentage and fixed coupons with a minimum order amount, an
optional cap on percentage discounts, a usage limit and an expiry time.
Codes are case-insensitive and stored upper-case.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from bookorders.coupons.port import CouponQuote, CouponService
from bookorders.errors import InvalidCouponError


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass
class Coupon:
    code: str
    discount_type: str
    value: float
    description: str | None = None
    min_order_amount: float = 0.0
    max_discount: float | None = None
    usage_limit: int | None = None
    used_count: int = 0
    expires_at: datetime | None = None
    is_active: bool = True

    def is_valid(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.expires_at is not None and self.expires_at <= now:
            return False
        if self.usage_limit is not None and self.used_count >= self.usage_limit:
            return False
        return True

    def calculate_discount(self, order_amount: float) -> float:
        amount = Decimal(str(order_amount))
        if DiscountType(self.discount_type) == DiscountType.PERCENTAGE:
            discount = amount * Decimal(str(self.value)) / 100
            if self.max_discount is not None:
                discount = min(discount, Decimal(str(self.max_discount)))
        else:
            discount = Decimal(str(self.value))
        discount = min(discount, amount)
        return float(discount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class InMemoryCouponService(CouponService):
    def __init__(self) -> None:
        self._coupons: dict[str, Coupon] = {}
        self.calls: list[dict] = []

    def add_coupon(self, code: str, discount_type: str, value: float, **options) -> Coupon:
        if value < 0:
            raise ValueError("coupon value must not be negative")
        if DiscountType(discount_type) == DiscountType.PERCENTAGE and value > 100:
            raise ValueError("percentage coupons cannot exceed 100")
        coupon = Coupon(code=code.upper(), discount_type=discount_type, value=value, **options)
        self._coupons[coupon.code] = coupon
        return coupon

    def delete_coupon(self, code: str) -> None:
        self._coupons.pop(code.upper(), None)

    def get(self, code: str) -> Coupon | None:
        return self._coupons.get(code.upper())

    def validate(self, code: str, order_amount: float) -> CouponQuote:
        self.calls.append({"method": "validate", "code": code, "order_amount": order_amount})

        coupon = self.get(code)
        if coupon is None or not coupon.is_active:
            raise InvalidCouponError("Invalid coupon code")
        if not coupon.is_valid(datetime.now(UTC)):
            raise InvalidCouponError("Coupon is expired or usage limit exceeded")
        if order_amount < coupon.min_order_amount:
            raise InvalidCouponError(f"Minimum order amount of {coupon.min_order_amount:.2f} required")

        return CouponQuote(
            code=coupon.code,
            description=coupon.description,
            discount_type=coupon.discount_type,
            value=coupon.value,
            discount=coupon.calculate_discount(order_amount),
        )

    def redeem(self, code: str) -> None:
        self.calls.append({"method": "redeem", "code": code})
        coupon = self.get(code)
        if coupon is not None:
            coupon.used_count += 1

    def reset(self) -> None:
        self._coupons.clear()
        self.calls.clear()
