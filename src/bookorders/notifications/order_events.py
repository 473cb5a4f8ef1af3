"""Order event handler: tells sellers, admins and customers what happened.

Runs after the order's unit of work commits (inline in tests, through the
Protean Engine in production). Delivery is best effort: every failure is
logged and swallowed so it can never unwind the order.
"""

import json

import structlog
from protean.utils.mixins import handle

from bookorders.config import get_settings
from bookorders.domain import bookorders
from bookorders.notifications import get_dispatcher
from bookorders.notifications.port import NotificationKind
from bookorders.order.events import (
    CommissionOverridden,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentCaptured,
    RefundProcessed,
    SellerPaymentMarkedPaid,
)
from bookorders.order.order import Order

logger = structlog.get_logger(__name__)


def _send(recipient_id, kind: NotificationKind, title: str, body: str, data: dict) -> bool:
    try:
        result = get_dispatcher().notify(str(recipient_id), kind.value, title, body, data)
    except Exception as exc:
        logger.error(
            "notification_dispatch_failed",
            recipient_id=str(recipient_id),
            title=title,
            order_id=data.get("order_id"),
            error=str(exc),
        )
        return False

    if result.get("status") != "sent":
        logger.warning(
            "notification_not_sent",
            recipient_id=str(recipient_id),
            title=title,
            error=result.get("error"),
        )
        return False
    return True


@bookorders.event_handler(part_of=Order)
class OrderNotificationsHandler:
    """Reacts to Order events with notifications to the people involved."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        order_id = str(event.order_id)
        items = json.loads(event.items)
        seller_ids = json.loads(event.seller_ids)

        for seller_id in seller_ids:
            seller_items = [i for i in items if i["seller_id"] == seller_id]
            units = sum(i["quantity"] for i in seller_items)
            _send(
                seller_id,
                NotificationKind.ORDER,
                "New Order Received!",
                f"Order {order_id} includes {units} of your book(s).",
                {"order_id": order_id, "items": seller_items},
            )

        for admin_id in get_settings().admin_recipients:
            _send(
                admin_id,
                NotificationKind.ORDER,
                "New Order Received!",
                f"Order {order_id} placed for {event.currency} {event.total:.2f} ({event.payment_method}).",
                {"order_id": order_id, "total": event.total, "seller_ids": seller_ids},
            )

        _send(
            event.customer_id,
            NotificationKind.ORDER,
            "Order Placed",
            f"Your order {order_id} has been placed.",
            {"order_id": order_id, "total": event.total},
        )
        logger.info("order_placed_notifications_sent", order_id=order_id, sellers=len(seller_ids))

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        # Cancellation has its own message
        if event.to_status == "cancelled":
            return
        body = f"Your order {event.order_id} is now {event.to_status}."
        if event.to_status == "shipped" and event.tracking_number:
            body += f" Tracking number: {event.tracking_number}."
        _send(
            event.customer_id,
            NotificationKind.ORDER,
            f"Order {event.to_status.capitalize()}",
            body,
            {"order_id": str(event.order_id), "status": event.to_status},
        )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        body = f"Your order {event.order_id} has been cancelled."
        if event.refund_eligible == "True":
            body += " A refund will be processed for the amount you paid."
        _send(
            event.customer_id,
            NotificationKind.ORDER,
            "Order Cancelled",
            body,
            {"order_id": str(event.order_id), "reason": event.reason},
        )

    @handle(PaymentCaptured)
    def on_payment_captured(self, event: PaymentCaptured) -> None:
        _send(
            event.customer_id,
            NotificationKind.PAYMENT,
            "Payment Received",
            f"We received your payment of {event.amount:.2f} for order {event.order_id}.",
            {"order_id": str(event.order_id), "gateway_payment_id": event.gateway_payment_id},
        )

    @handle(RefundProcessed)
    def on_refund_processed(self, event: RefundProcessed) -> None:
        _send(
            event.customer_id,
            NotificationKind.PAYMENT,
            "Refund Processed",
            f"A refund of {event.amount:.2f} for order {event.order_id} has been processed.",
            {"order_id": str(event.order_id), "amount": event.amount, "refund_total": event.refund_total},
        )

    @handle(CommissionOverridden)
    def on_commission_overridden(self, event: CommissionOverridden) -> None:
        _send(
            event.seller_id,
            NotificationKind.GENERAL,
            "Payment Updated",
            f"Commission for order {event.order_id} changed to {event.new_rate:g}%. "
            f"Net amount: {event.net_amount:.2f}.",
            {"order_id": str(event.order_id), "net_amount": event.net_amount},
        )

    @handle(SellerPaymentMarkedPaid)
    def on_seller_paid(self, event: SellerPaymentMarkedPaid) -> None:
        _send(
            event.seller_id,
            NotificationKind.GENERAL,
            "Payment Processed!",
            f"Your payment of {event.net_amount:.2f} for order {event.order_id} has been processed.",
            {"order_id": str(event.order_id), "net_amount": event.net_amount},
        )
