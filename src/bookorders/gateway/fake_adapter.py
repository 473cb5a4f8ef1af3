"""Configurable fake payment gateway for development and testing.

Creates payment intents without any network call and verifies callback
signatures with the same HMAC scheme as the real gateway, so tests can
produce valid callbacks with ``sign()``. Configure it to fail to exercise
the gateway-outage path.
"""

import hmac
from uuid import uuid4

from bookorders.gateway.port import PaymentGateway, PaymentIntent, compute_signature


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, secret: str = "test-gateway-secret") -> None:
        self.secret = secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_payment_intent(self, amount: float, currency: str, receipt: str) -> PaymentIntent:
        self.calls.append(
            {
                "method": "create_payment_intent",
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
            }
        )

        if self.should_succeed:
            return PaymentIntent(
                success=True,
                gateway_order_id=f"order_{uuid4().hex[:14]}",
                amount=amount,
                currency=currency,
                receipt=receipt,
            )
        return PaymentIntent(success=False, failure_reason=self.failure_reason)

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        self.calls.append(
            {
                "method": "verify_payment_signature",
                "gateway_order_id": gateway_order_id,
                "gateway_payment_id": gateway_payment_id,
            }
        )
        expected = compute_signature(self.secret, gateway_order_id, gateway_payment_id)
        return hmac.compare_digest(expected, signature or "")

    def sign(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        """Produce the signature the gateway would send for this payment."""
        return compute_signature(self.secret, gateway_order_id, gateway_payment_id)
