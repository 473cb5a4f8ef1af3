"""Razorpay payment gateway adapter (production stub).

Signature verification is plain HMAC and works as-is. Creating orders needs
the razorpay SDK client and is not wired up yet.
"""

import hmac

from bookorders.gateway.port import PaymentGateway, PaymentIntent, compute_signature


class RazorpayGateway(PaymentGateway):
    """Production Razorpay gateway adapter."""

    def __init__(self, key_id: str, key_secret: str) -> None:
        self.key_id = key_id
        self.key_secret = key_secret

    def create_payment_intent(self, amount: float, currency: str, receipt: str) -> PaymentIntent:
        raise NotImplementedError(
            "RazorpayGateway.create_payment_intent() is not yet implemented. "
            "Call razorpay.Client.order.create() with the amount in paise here."
        )

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        expected = compute_signature(self.key_secret, gateway_order_id, gateway_payment_id)
        return hmac.compare_digest(expected, signature or "")
