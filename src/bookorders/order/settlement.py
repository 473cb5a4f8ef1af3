"""Seller settlement administration: commands and handler.

Shipping corrections and commission overrides recompute only settlements
that are still ``due``; paying a seller freezes their settlement.
"""

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from bookorders.config import get_settings
from bookorders.domain import bookorders
from bookorders.order.lifecycle import load_order
from bookorders.order.order import Order


@bookorders.command(part_of="Order")
class CorrectShippingCost:
    order_id = Identifier(required=True)
    shipping_cost = Float(required=True, min_value=0.0)
    corrected_by = String(required=True, max_length=100)


@bookorders.command(part_of="Order")
class OverrideCommission:
    order_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    commission_rate = Float(required=True, min_value=0.0, max_value=100.0)
    overridden_by = String(required=True, max_length=100)


@bookorders.command(part_of="Order")
class MarkSellerPaid:
    order_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    paid_by = String(required=True, max_length=100)
    notes = Text()


@bookorders.command_handler(part_of=Order)
class SellerSettlementHandler:
    @handle(CorrectShippingCost)
    def correct_shipping_cost(self, command):
        order = load_order(command.order_id)
        order.correct_shipping_cost(
            command.shipping_cost,
            command.corrected_by,
            shipping_split=get_settings().zero_subtotal_shipping,
        )
        current_domain.repository_for(Order).add(order)

    @handle(OverrideCommission)
    def override_commission(self, command):
        order = load_order(command.order_id)
        order.override_commission(command.seller_id, command.commission_rate, command.overridden_by)
        current_domain.repository_for(Order).add(order)

    @handle(MarkSellerPaid)
    def mark_seller_paid(self, command):
        order = load_order(command.order_id)
        order.mark_seller_paid(command.seller_id, command.paid_by, notes=command.notes)
        current_domain.repository_for(Order).add(order)
