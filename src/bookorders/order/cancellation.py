"""Order cancellation and refund: commands and handler.

Cancelling puts reserved stock back and, when money was captured, flags the
order as refund eligible. Settlements already paid to sellers are left as
they are; clawing them back is an out-of-band admin task. Refunds move money
only: they never change the order's status.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from bookorders.domain import bookorders
from bookorders.errors import NotCancellableError
from bookorders.order.lifecycle import load_order, transition
from bookorders.order.order import Order
from bookorders.order.state_machine import OrderStatus


@bookorders.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    cancelled_by = String(required=True, max_length=100)


@bookorders.command(part_of="Order")
class ProcessRefund:
    order_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(max_length=500)
    processed_by = String(required=True, max_length=100)


def cancel_order(order: Order, reason, actor, ledger=None, settings=None) -> Order:
    """Cancel a pending, confirmed or shipped order and reverse its stock."""
    if not order.can_be_cancelled():
        raise NotCancellableError(order.status)
    return transition(order, OrderStatus.CANCELLED, actor, note=reason, ledger=ledger, settings=settings)


@bookorders.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load_order(command.order_id)
        cancel_order(order, command.reason, command.cancelled_by)
        current_domain.repository_for(Order).add(order)

    @handle(ProcessRefund)
    def process_refund(self, command):
        order = load_order(command.order_id)
        order.process_refund(command.amount, command.reason, command.processed_by)
        current_domain.repository_for(Order).add(order)
