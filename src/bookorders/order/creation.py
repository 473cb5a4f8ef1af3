"""Order placement: command and handler.

Placement is all-or-nothing: every book is looked up and checked against
live stock, the order is priced (coupon, then shipping on the discounted
subtotal), and only then is anything written. Cash-on-delivery orders are
confirmed straight away, which reserves stock and settles sellers; orders
paid through the gateway wait in ``pending`` for a verified payment.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from bookorders.catalog import get_catalog
from bookorders.config import get_settings
from bookorders.coupons import get_coupon_service
from bookorders.domain import bookorders
from bookorders.errors import InsufficientStockError
from bookorders.order.lifecycle import SYSTEM_ACTOR, transition
from bookorders.order.order import Order
from bookorders.order.pricing import quote_order
from bookorders.order.state_machine import OrderStatus
from bookorders.shipping import get_shipping_calculator

logger = structlog.get_logger(__name__)

MAX_QUANTITY_PER_LINE = 100


@bookorders.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: [{"book_id": ..., "quantity": ...}]
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = String(required=True, max_length=50)
    coupon_code = String(max_length=50)


def parse_items(raw) -> dict[str, int]:
    """Validate requested items and merge repeated books.

    Quantities must be real integers (not strings, floats or booleans) between
    1 and ``MAX_QUANTITY_PER_LINE``.
    """
    try:
        items = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        raise ValidationError({"items": ["Items must be a JSON list"]}) from None
    if not isinstance(items, list) or not items:
        raise ValidationError({"items": ["An order needs at least one item"]})

    merged: dict[str, int] = {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError({"items": [f"Item {index} must be an object"]})
        book_id = item.get("book_id")
        quantity = item.get("quantity")
        if not isinstance(book_id, str) or not book_id.strip():
            raise ValidationError({"items": [f"Item {index} needs a book_id"]})
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({"items": [f"Item {index} needs a positive integer quantity"]})
        merged[book_id] = merged.get(book_id, 0) + quantity

    for book_id, quantity in merged.items():
        if quantity > MAX_QUANTITY_PER_LINE:
            raise ValidationError({"items": [f"At most {MAX_QUANTITY_PER_LINE} copies of {book_id} per order"]})
    return merged


@bookorders.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        requested = parse_items(command.items)
        try:
            address = (
                json.loads(command.shipping_address)
                if isinstance(command.shipping_address, str)
                else command.shipping_address
            )
        except ValueError:
            raise ValidationError({"shipping_address": ["Shipping address must be a JSON object"]}) from None
        if not isinstance(address, dict) or not address.get("postal_code"):
            raise ValidationError({"shipping_address": ["A shipping address with a postal code is required"]})

        catalog = get_catalog()
        lines = []
        for book_id, quantity in requested.items():
            info = catalog.get_book_pricing_info(book_id)
            if quantity > info.stock:
                raise InsufficientStockError(book_id, quantity, info.stock)
            lines.append(
                {
                    "book_id": info.book_id,
                    "title": info.title,
                    "seller_id": info.seller_id,
                    "quantity": quantity,
                    "unit_price_at_purchase": info.price,
                }
            )

        coupons = get_coupon_service()
        quote = quote_order(
            lines,
            address["postal_code"],
            coupons,
            get_shipping_calculator(),
            coupon_code=command.coupon_code,
        )

        settings = get_settings()
        order = Order.place(
            customer_id=command.customer_id,
            items_data=lines,
            shipping_address=address,
            payment_method=command.payment_method,
            pricing=quote,
            coupon_snapshot=quote.coupon_snapshot,
            currency=settings.currency,
        )

        if order.is_cash_on_delivery():
            transition(
                order,
                OrderStatus.CONFIRMED,
                SYSTEM_ACTOR,
                note="Cash on delivery order confirmed",
                settings=settings,
            )

        current_domain.repository_for(Order).add(order)

        if quote.coupon_snapshot:
            try:
                coupons.redeem(quote.coupon_snapshot["code"])
            except Exception as exc:
                logger.error(
                    "coupon_redeem_failed",
                    order_id=str(order.id),
                    coupon_code=quote.coupon_snapshot["code"],
                    error=str(exc),
                )

        logger.info(
            "order_placed",
            order_id=str(order.id),
            customer_id=str(command.customer_id),
            status=order.status,
            total=order.total,
            sellers=len(order.seller_ids()),
        )
        return str(order.id)
