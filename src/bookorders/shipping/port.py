"""Shipping calculator port (abstract interface)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PostalCodeCheck:
    is_valid: bool
    message: str


@dataclass(frozen=True)
class ShippingQuote:
    """Shipping cost plus the delivery details shown at checkout."""

    postal_code: str
    zone: str
    cost: float
    free_shipping: bool
    estimated_days: int


class ShippingCalculator(ABC):
    """Abstract shipping cost interface."""

    @abstractmethod
    def validate_postal_code(self, postal_code: str) -> PostalCodeCheck:
        ...

    @abstractmethod
    def calculate(self, postal_code: str, discounted_subtotal: float) -> float:
        """Shipping cost for an order of ``discounted_subtotal`` to ``postal_code``."""
        ...

    @abstractmethod
    def quote(self, postal_code: str, discounted_subtotal: float) -> ShippingQuote:
        ...
