"""Lifecycle helpers shared by the order command handlers.

``transition`` is the one place where a status change meets the stock
ledger: it validates the move, applies the ledger effect the target status
needs (at most once per order, guarded by the order's flags), then lets the
aggregate record the change.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from bookorders.config import OrderingSettings, get_settings
from bookorders.errors import OrderNotFoundError
from bookorders.order.order import Order
from bookorders.order.state_machine import assert_transition
from bookorders.stock import get_stock_ledger
from bookorders.stock.port import StockLedger

logger = structlog.get_logger(__name__)

SYSTEM_ACTOR = "system"


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise OrderNotFoundError(order_id) from None


def transition(
    order: Order,
    target,
    actor,
    note=None,
    ledger: StockLedger | None = None,
    settings: OrderingSettings | None = None,
    tracking_number=None,
    estimated_delivery=None,
) -> Order:
    """Move ``order`` to ``target`` with its stock and settlement effects."""
    assert_transition(order.status, target)
    ledger = ledger or get_stock_ledger()
    settings = settings or get_settings()

    if order.needs_stock_reservation(target):
        ledger.reserve(str(order.id), order.stock_lines())
    elif order.needs_stock_restore(target):
        ledger.restore(str(order.id), order.stock_lines())

    order.advance(
        target,
        actor,
        note=note,
        commission_rate=settings.commission_rate,
        shipping_split=settings.zero_subtotal_shipping,
        tracking_number=tracking_number,
        estimated_delivery=estimated_delivery,
    )
    logger.info(
        "order_status_changed",
        order_id=str(order.id),
        status=order.status,
        changed_by=str(actor),
    )
    return order
