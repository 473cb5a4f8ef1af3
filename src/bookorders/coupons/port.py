"""Coupon service port (abstract interface).

The ordering core asks the coupon service two things: what a code is worth
against an order amount, and to count a use once the order is placed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CouponQuote:
    """A validated coupon and the discount it grants on one order amount."""

    code: str
    description: str | None
    discount_type: str
    value: float
    discount: float

    def snapshot(self) -> dict:
        """The denormalized copy stored on the order."""
        return {
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "value": self.value,
        }


class CouponService(ABC):
    """Abstract coupon lookup interface."""

    @abstractmethod
    def validate(self, code: str, order_amount: float) -> CouponQuote:
        """Return the discount for ``code`` on ``order_amount``.

        Raises:
            InvalidCouponError: unknown, inactive, expired or exhausted coupon,
                or an order amount below the coupon's minimum.
        """
        ...

    @abstractmethod
    def redeem(self, code: str) -> None:
        """Record one use of the coupon."""
        ...
