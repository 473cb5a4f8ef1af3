"""Order status model and the allowed transitions between statuses.

    pending ──> confirmed ──> shipped ──> delivered ──> returned
       │            │            │
       └────────────┴────────────┴──> cancelled

``cancelled`` and ``returned`` are terminal. Entry side effects (stock,
settlement, refund eligibility) are applied by the ``Order`` aggregate; this
module only answers "is this move allowed".
"""

from enum import Enum

from bookorders.errors import InvalidTransitionError, NotCancellableError


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    RAZORPAY = "razorpay"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

CANCELLABLE_STATES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.SHIPPED})

# Entering these statuses puts reserved stock back
STOCK_RESTORING_STATES = frozenset({OrderStatus.CANCELLED, OrderStatus.RETURNED})


def allowed_transitions(current) -> set:
    return set(_VALID_TRANSITIONS[OrderStatus(current)])


def can_transition(current, target) -> bool:
    return OrderStatus(target) in _VALID_TRANSITIONS[OrderStatus(current)]


def can_be_cancelled(current) -> bool:
    return OrderStatus(current) in CANCELLABLE_STATES


def assert_transition(current, target) -> None:
    """Raise unless ``current -> target`` is an allowed move.

    Cancellation attempts get the more specific ``NotCancellableError``.
    """
    current = OrderStatus(current)
    target = OrderStatus(target)
    if target in _VALID_TRANSITIONS[current]:
        return
    if target == OrderStatus.CANCELLED:
        raise NotCancellableError(current.value)
    raise InvalidTransitionError(current.value, target.value)


def is_terminal(status) -> bool:
    return not _VALID_TRANSITIONS[OrderStatus(status)]
