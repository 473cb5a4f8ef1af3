"""Seller settlement calculator.

Turns an order's item snapshots and shipping cost into one settlement per
seller:

    items_total      = sum(unit_price_at_purchase * quantity) for the seller
    shipping_charges = shipping_cost * items_total / subtotal
    admin_commission = items_total * commission_rate / 100
    net_amount       = items_total - admin_commission - shipping_charges

Amounts are computed in ``Decimal`` and rounded to paise (half-up). Shipping
shares always add up to the order's shipping cost; the rounding remainder
goes to the last seller. The module is pure: callers supply the commission
rate and zero-subtotal policy explicitly.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from bookorders.config import ShippingSplit

PAISE = Decimal("0.01")


def to_money(value) -> Decimal:
    """Convert a float/str/int amount to a Decimal rounded to paise."""
    return Decimal(str(value)).quantize(PAISE, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SettlementLine:
    """Computed amounts for one seller. All amounts are floats rounded to paise."""

    seller_id: str
    items_total: float
    shipping_charges: float
    commission_rate: float
    admin_commission: float
    net_amount: float


def group_items_by_seller(items) -> dict[str, Decimal]:
    """Sum item lines per seller, keeping first-appearance order.

    ``items`` is any iterable of objects or dicts exposing ``seller_id``,
    ``unit_price_at_purchase`` and ``quantity``.
    """
    totals: dict[str, Decimal] = {}
    for item in items:
        seller_id = _read(item, "seller_id")
        line = to_money(_read(item, "unit_price_at_purchase")) * int(_read(item, "quantity"))
        totals[seller_id] = totals.get(seller_id, Decimal("0")) + line
    return {seller_id: total.quantize(PAISE, rounding=ROUND_HALF_UP) for seller_id, total in totals.items()}


def allocate_shipping(items_totals: dict[str, Decimal], shipping_cost, split=ShippingSplit.EQUAL) -> dict[str, Decimal]:
    """Split ``shipping_cost`` across sellers in proportion to their items total.

    When the combined items total is zero there is nothing to be proportional
    to, so ``split`` decides: EQUAL divides the cost evenly, NONE charges no
    seller (the platform absorbs shipping).
    """
    sellers = list(items_totals)
    if not sellers:
        return {}

    shipping = to_money(shipping_cost)
    subtotal = sum(items_totals.values(), Decimal("0"))

    if subtotal == 0:
        if ShippingSplit(split) == ShippingSplit.NONE:
            return {seller_id: Decimal("0.00") for seller_id in sellers}
        weights = {seller_id: Decimal("1") for seller_id in sellers}
        weight_total = Decimal(len(sellers))
    else:
        weights = items_totals
        weight_total = subtotal

    shares: dict[str, Decimal] = {}
    allocated = Decimal("0")
    for seller_id in sellers[:-1]:
        share = (shipping * weights[seller_id] / weight_total).quantize(PAISE, rounding=ROUND_HALF_UP)
        shares[seller_id] = share
        allocated += share
    shares[sellers[-1]] = shipping - allocated
    return shares


def compute_line(seller_id, items_total, shipping_charges, commission_rate) -> SettlementLine:
    """Derive commission and net amount for one seller."""
    items_total = to_money(items_total)
    shipping_charges = to_money(shipping_charges)
    rate = Decimal(str(commission_rate))
    admin_commission = (items_total * rate / 100).quantize(PAISE, rounding=ROUND_HALF_UP)
    net_amount = items_total - admin_commission - shipping_charges
    return SettlementLine(
        seller_id=seller_id,
        items_total=float(items_total),
        shipping_charges=float(shipping_charges),
        commission_rate=float(rate),
        admin_commission=float(admin_commission),
        net_amount=float(net_amount),
    )


def calculate_settlements(
    items,
    shipping_cost,
    commission_rate,
    split=ShippingSplit.EQUAL,
    rate_overrides: dict | None = None,
) -> list[SettlementLine]:
    """Compute one settlement per seller represented in ``items``.

    Args:
        items: Item snapshots (``seller_id``, ``unit_price_at_purchase``, ``quantity``).
        shipping_cost: The order's shipping cost.
        commission_rate: Platform rate in percent, frozen into sellers without an override.
        split: Policy for allocating shipping when the subtotal is zero.
        rate_overrides: Optional ``{seller_id: rate}`` for sellers whose rate was
            already captured or overridden.
    """
    if not 0 <= float(commission_rate) <= 100:
        raise ValueError("commission_rate must be between 0 and 100")

    rate_overrides = rate_overrides or {}
    items_totals = group_items_by_seller(items)
    shipping_shares = allocate_shipping(items_totals, shipping_cost, split)
    return [
        compute_line(
            seller_id,
            items_total,
            shipping_shares[seller_id],
            rate_overrides.get(seller_id, commission_rate),
        )
        for seller_id, items_total in items_totals.items()
    ]


def _read(item, name):
    if isinstance(item, dict):
        return item[name]
    return getattr(item, name)
