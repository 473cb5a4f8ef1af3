"""Error taxonomy for order placement, lifecycle and settlement.

Every error extends one of Protean's exceptions so the Protean FastAPI
integration and existing ``except ValidationError`` blocks keep working.
Each carries a stable ``code`` that the API layer reports to clients.
"""

from protean.exceptions import ObjectNotFoundError, ProteanException, ValidationError


class NotFoundError(ObjectNotFoundError):
    code = "not_found"


class BookNotFoundError(NotFoundError):
    code = "book_not_found"

    def __init__(self, book_id):
        self.book_id = book_id
        super().__init__({"book_id": [f"Book not found: {book_id}"]})


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__({"order_id": [f"Order not found: {order_id}"]})


class PaymentNotFoundError(NotFoundError):
    code = "payment_not_found"

    def __init__(self, order_id, seller_id):
        self.order_id = order_id
        self.seller_id = seller_id
        super().__init__({"seller_id": [f"No settlement for seller {seller_id} on order {order_id}"]})


class InsufficientStockError(ValidationError):
    code = "insufficient_stock"

    def __init__(self, book_id, requested, available):
        self.book_id = book_id
        self.requested = requested
        self.available = available
        super().__init__(
            {"quantity": [f"Insufficient stock for {book_id}: {available} available, {requested} requested"]}
        )


class InvalidTransitionError(ValidationError):
    code = "invalid_transition"

    def __init__(self, current, target, message=None):
        self.current = current
        self.target = target
        super().__init__({"status": [message or f"Cannot transition from {current} to {target}"]})


class NotCancellableError(InvalidTransitionError):
    code = "not_cancellable"

    def __init__(self, current):
        super().__init__(
            current,
            "cancelled",
            f"Order cannot be cancelled in {current} state. Orders can only be cancelled before delivery.",
        )


class AlreadyPaidError(ValidationError):
    code = "already_paid"

    def __init__(self, seller_id):
        self.seller_id = seller_id
        super().__init__({"seller_id": [f"Settlement for seller {seller_id} is already paid"]})


class InvalidRefundAmountError(ValidationError):
    code = "invalid_refund_amount"

    def __init__(self, message):
        super().__init__({"amount": [message]})


class InvalidCouponError(ValidationError):
    code = "invalid_coupon"

    def __init__(self, message):
        super().__init__({"coupon_code": [message]})


class PaymentVerificationError(ValidationError):
    code = "payment_verification_failed"

    def __init__(self, message="Payment verification failed - invalid signature"):
        super().__init__({"signature": [message]})


class ExternalServiceError(ProteanException):
    """A collaborator (coupon, shipping, payment gateway) failed or was unreachable."""

    code = "external_service_error"

    def __init__(self, service, message):
        self.service = service
        super().__init__({service: [message]})
