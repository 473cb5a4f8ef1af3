"""Pricing and discount resolution for new orders.

Combines the item subtotal with the coupon discount and the shipping cost
supplied by the external coupon and shipping services:

    total = subtotal - coupon_discount + shipping_cost

Shipping is quoted on the discounted subtotal. Unexpected failures of either
service surface as ``ExternalServiceError`` so order placement aborts before
anything is written.
"""

from dataclasses import dataclass
from decimal import Decimal

import structlog
from protean.exceptions import ValidationError

from bookorders.coupons.port import CouponService
from bookorders.errors import ExternalServiceError, InvalidCouponError
from bookorders.settlement.calculator import to_money
from bookorders.shipping.port import ShippingCalculator

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PriceQuote:
    subtotal: float
    coupon_discount: float
    shipping_cost: float
    total: float
    coupon_snapshot: dict | None = None


def compute_subtotal(lines) -> Decimal:
    """Sum ``unit_price_at_purchase * quantity`` over item dicts."""
    return sum(
        (to_money(line["unit_price_at_purchase"]) * int(line["quantity"]) for line in lines),
        Decimal("0"),
    )


def compute_total(subtotal, coupon_discount, shipping_cost) -> Decimal:
    return to_money(subtotal) - to_money(coupon_discount) + to_money(shipping_cost)


def resolve_discount(coupons: CouponService, coupon_code: str | None, subtotal: Decimal):
    """Return ``(discount, snapshot)`` for an optional coupon code."""
    if not coupon_code:
        return Decimal("0.00"), None

    try:
        quote = coupons.validate(coupon_code, float(subtotal))
    except InvalidCouponError:
        raise
    except Exception as exc:
        logger.error("coupon_service_failed", coupon_code=coupon_code, error=str(exc))
        raise ExternalServiceError("coupon_service", "Coupon service is unavailable") from exc

    # A discount can never take the subtotal below zero
    discount = min(to_money(quote.discount), subtotal)
    return discount, quote.snapshot()


def resolve_shipping(shipping: ShippingCalculator, postal_code: str, discounted_subtotal: Decimal) -> Decimal:
    check = shipping.validate_postal_code(postal_code)
    if not check.is_valid:
        raise ValidationError({"postal_code": [check.message]})

    try:
        cost = shipping.calculate(postal_code, float(discounted_subtotal))
    except Exception as exc:
        logger.error("shipping_calculator_failed", postal_code=postal_code, error=str(exc))
        raise ExternalServiceError("shipping_calculator", "Shipping calculator is unavailable") from exc

    if cost is None or cost < 0:
        raise ExternalServiceError("shipping_calculator", f"Shipping calculator returned an invalid cost: {cost}")
    return to_money(cost)


def quote_order(
    lines,
    postal_code: str,
    coupons: CouponService,
    shipping: ShippingCalculator,
    coupon_code: str | None = None,
) -> PriceQuote:
    """Price a list of item dicts for delivery to ``postal_code``."""
    subtotal = compute_subtotal(lines)
    discount, snapshot = resolve_discount(coupons, coupon_code, subtotal)
    shipping_cost = resolve_shipping(shipping, postal_code, subtotal - discount)
    total = compute_total(subtotal, discount, shipping_cost)
    return PriceQuote(
        subtotal=float(subtotal),
        coupon_discount=float(discount),
        shipping_cost=float(shipping_cost),
        total=float(total),
        coupon_snapshot=snapshot,
    )
