"""Order status updates: command and handler.

Used by admins and sellers to move an order along its delivery lifecycle
(confirm, ship, deliver, return, cancel).
"""

from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from bookorders.domain import bookorders
from bookorders.order.lifecycle import load_order, transition
from bookorders.order.order import Order
from bookorders.order.state_machine import OrderStatus


@bookorders.command(part_of="Order")
class AdvanceOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    changed_by = String(required=True, max_length=100)
    note = String(max_length=500)
    tracking_number = String(max_length=255)
    estimated_delivery = DateTime()


@bookorders.command_handler(part_of=Order)
class AdvanceOrderStatusHandler:
    @handle(AdvanceOrderStatus)
    def advance_order_status(self, command):
        order = load_order(command.order_id)
        transition(
            order,
            command.status,
            command.changed_by,
            note=command.note,
            tracking_number=command.tracking_number,
            estimated_delivery=command.estimated_delivery,
        )
        current_domain.repository_for(Order).add(order)
        return order.status
