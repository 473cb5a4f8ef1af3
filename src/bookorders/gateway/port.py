"""Payment gateway port (abstract interface).

Gateway-paid orders follow a two-step flow: the core asks the gateway for a
payment intent covering the order total, the customer pays on the gateway's
checkout, and the gateway calls back with a payment id and an HMAC-SHA256
signature over ``"<gateway_order_id>|<gateway_payment_id>"``. The order is
only confirmed after that signature verifies.
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentIntent:
    """Result of asking the gateway to open a payment for an order."""

    success: bool
    gateway_order_id: str | None = None
    amount: float | None = None
    currency: str | None = None
    receipt: str | None = None
    failure_reason: str | None = None


def compute_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """Hex HMAC-SHA256 of ``"<gateway_order_id>|<gateway_payment_id>"``."""
    body = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_payment_intent(self, amount: float, currency: str, receipt: str) -> PaymentIntent:
        """Open a remote payment for ``amount`` (in rupees) tagged with ``receipt``."""
        ...

    @abstractmethod
    def verify_payment_signature(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        """Check that a payment callback really comes from the gateway."""
        ...
