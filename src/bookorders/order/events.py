"""Domain events for the Order aggregate.

Events are immutable facts raised by the aggregate and dispatched after the
unit of work commits. They feed the notification handlers and any external
consumer of order activity; the order itself is persisted as a document and
is not rebuilt from them.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from bookorders.domain import bookorders


@bookorders.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order; items and prices are snapshots."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    seller_ids = Text(required=True)  # JSON: list of seller ids in item order
    items = Text(required=True)  # JSON: list of item dicts
    subtotal = Float(required=True)
    coupon_discount = Float()
    shipping_cost = Float()
    total = Float(required=True)
    currency = String(default="INR")
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@bookorders.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along its delivery lifecycle."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    changed_by = String(required=True)
    note = String(max_length=500)
    tracking_number = String(max_length=255)
    changed_at = DateTime(required=True)


@bookorders.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(max_length=500)
    cancelled_by = String(required=True)
    refund_eligible = String(required=True)  # "True" / "False"
    cancelled_at = DateTime(required=True)


@bookorders.event(part_of="Order")
class StockReserved:
    __version__ = 1

    order_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: [{"book_id", "quantity"}]


@bookorders.event(part_of="Order")
class StockRestored:
    __version__ = 1

    order_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: [{"book_id", "quantity"}]


@bookorders.event(part_of="Order")
class SettlementComputed:
    """Per-seller settlements were computed or recomputed."""

    __version__ = 1

    order_id = Identifier(required=True)
    settlements = Text(required=True)  # JSON: list of settlement dicts
    shipping_cost = Float(required=True)
    reason = String(max_length=50)


@bookorders.event(part_of="Order")
class CommissionOverridden:
    __version__ = 1

    order_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    previous_rate = Float(required=True)
    new_rate = Float(required=True)
    admin_commission = Float(required=True)
    net_amount = Float(required=True)
    overridden_by = String(required=True)


@bookorders.event(part_of="Order")
class SellerPaymentMarkedPaid:
    """A seller's share of the order was paid out."""

    __version__ = 1

    order_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    net_amount = Float(required=True)
    paid_by = String(required=True)
    paid_at = DateTime(required=True)


@bookorders.event(part_of="Order")
class RefundProcessed:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    amount = Float(required=True)
    refund_total = Float(required=True)
    payment_status = String(required=True)
    reason = String(max_length=500)
    processed_by = String(required=True)
    refunded_at = DateTime(required=True)


@bookorders.event(part_of="Order")
class PaymentIntentCreated:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    amount = Float(required=True)
    currency = String(default="INR")


@bookorders.event(part_of="Order")
class PaymentCaptured:
    """The gateway confirmed payment with a valid signature."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_payment_id = String(required=True)
    amount = Float(required=True)
    captured_at = DateTime(required=True)
