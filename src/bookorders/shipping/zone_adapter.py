"""Zone-rate shipping for six-digit Indian PIN codes.

The first digit of a PIN code names the postal region. Each region has a
flat rate; orders whose discounted subtotal reaches the free-shipping
threshold ship for free.
"""

import re

from bookorders.shipping.port import PostalCodeCheck, ShippingCalculator, ShippingQuote

_PIN_PATTERN = re.compile(r"^[1-9][0-9]{5}$")

# region digit -> (zone, rate, estimated days)
_ZONES = {
    "1": ("north", 50.0, 4),
    "2": ("north", 50.0, 4),
    "3": ("west", 60.0, 5),
    "4": ("west", 60.0, 5),
    "5": ("south", 70.0, 5),
    "6": ("south", 70.0, 6),
    "7": ("east", 80.0, 6),
    "8": ("east", 80.0, 7),
    "9": ("army_postal", 100.0, 10),
}


class ZoneShippingCalculator(ShippingCalculator):
    def __init__(self, free_shipping_threshold: float = 2000.0) -> None:
        self.free_shipping_threshold = free_shipping_threshold

    def validate_postal_code(self, postal_code: str) -> PostalCodeCheck:
        if not postal_code:
            return PostalCodeCheck(is_valid=False, message="PIN code is required")
        if not _PIN_PATTERN.match(postal_code.strip()):
            return PostalCodeCheck(is_valid=False, message="PIN code must be 6 digits and cannot start with 0")
        return PostalCodeCheck(is_valid=True, message="Valid PIN code")

    def calculate(self, postal_code: str, discounted_subtotal: float) -> float:
        return self.quote(postal_code, discounted_subtotal).cost

    def quote(self, postal_code: str, discounted_subtotal: float) -> ShippingQuote:
        check = self.validate_postal_code(postal_code)
        if not check.is_valid:
            raise ValueError(check.message)

        postal_code = postal_code.strip()
        zone, rate, days = _ZONES[postal_code[0]]
        free = discounted_subtotal >= self.free_shipping_threshold
        return ShippingQuote(
            postal_code=postal_code,
            zone=zone,
            cost=0.0 if free else rate,
            free_shipping=free,
            estimated_days=days,
        )
