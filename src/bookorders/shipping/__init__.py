"""Shipping calculator factory.

Provides get_shipping_calculator() / set_shipping_calculator(). Defaults to
ZoneShippingCalculator with the configured free-shipping threshold.
"""

from bookorders.config import get_settings
from bookorders.shipping.port import ShippingCalculator
from bookorders.shipping.zone_adapter import ZoneShippingCalculator

_current_calculator: ShippingCalculator | None = None


def get_shipping_calculator() -> ShippingCalculator:
    global _current_calculator
    if _current_calculator is None:
        _current_calculator = ZoneShippingCalculator(get_settings().free_shipping_threshold)
    return _current_calculator


def set_shipping_calculator(calculator: ShippingCalculator) -> None:
    """Override the active shipping calculator (useful for tests)."""
    global _current_calculator
    _current_calculator = calculator


def reset_shipping_calculator() -> None:
    global _current_calculator
    _current_calculator = None
