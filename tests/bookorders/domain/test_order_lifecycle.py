"""Tests for Order.advance and the stock-aware transition helper."""

from datetime import UTC, datetime, timedelta

import pytest
from bookorders.config import ShippingSplit
from bookorders.errors import InsufficientStockError, InvalidTransitionError, NotCancellableError
from bookorders.order.cancellation import cancel_order
from bookorders.order.events import (
    OrderCancelled,
    OrderStatusChanged,
    SettlementComputed,
    StockReserved,
    StockRestored,
)
from bookorders.order.lifecycle import transition
from bookorders.order.order import Order
from bookorders.order.pricing import PriceQuote
from bookorders.order.state_machine import OrderStatus, PaymentStatus
from protean.exceptions import ValidationError

ADDRESS = {"street": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "postal_code": "560001"}


def _make_order(payment_method="cash_on_delivery"):
    order = Order.place(
        customer_id="cust-001",
        items_data=[
            {"book_id": "book-a1", "title": "A", "seller_id": "seller-a", "quantity": 2, "unit_price_at_purchase": 300.0},
            {"book_id": "book-b1", "title": "B", "seller_id": "seller-b", "quantity": 2, "unit_price_at_purchase": 200.0},
        ],
        shipping_address=ADDRESS,
        payment_method=payment_method,
        pricing=PriceQuote(subtotal=1000.0, coupon_discount=0.0, shipping_cost=70.0, total=1070.0),
    )
    order._events.clear()
    return order


def _event_names(order):
    return [type(event).__name__ for event in order._events]


def _order_at(status, payment_method="cash_on_delivery"):
    order = _make_order(payment_method)
    path = {
        "pending": [],
        "confirmed": ["confirmed"],
        "shipped": ["confirmed", "shipped"],
        "delivered": ["confirmed", "shipped", "delivered"],
    }[status]
    for step in path:
        order.advance(step, "admin-1", commission_rate=2.5)
    order._events.clear()
    return order


class TestConfirm:
    def test_confirm_settles_sellers(self):
        order = _make_order()
        order.advance("confirmed", "admin-1", commission_rate=2.5)

        payments = {p.seller_id: p for p in order.seller_payments}
        assert payments["seller-a"].items_total == 600.0
        assert payments["seller-a"].shipping_charges == 42.0
        assert payments["seller-a"].admin_commission == 15.0
        assert payments["seller-a"].net_amount == 543.0
        assert payments["seller-b"].shipping_charges == 28.0
        assert payments["seller-b"].admin_commission == 10.0
        assert payments["seller-b"].net_amount == 362.0
        assert all(p.payment_status == "due" for p in order.seller_payments)
        assert all(p.commission_rate == 2.5 for p in order.seller_payments)

    def test_confirm_marks_stock_reserved(self):
        order = _make_order()
        order.advance("confirmed", "admin-1", commission_rate=2.5)
        assert order.stock_reserved is True
        assert order.stock_restored is False

    def test_confirm_events(self):
        order = _make_order()
        order.advance("confirmed", "admin-1", commission_rate=2.5)
        assert _event_names(order) == ["StockReserved", "SettlementComputed", "OrderStatusChanged"]
        settled = order._events[1]
        assert isinstance(settled, SettlementComputed)
        assert settled.reason == "initial"
        changed = order._events[2]
        assert isinstance(changed, OrderStatusChanged)
        assert changed.from_status == "pending"
        assert changed.to_status == "confirmed"

    def test_confirm_requires_a_commission_rate(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.advance("confirmed", "admin-1")
        assert "commission_rate" in exc.value.messages
        assert order.status == "pending"

    def test_history_records_each_change(self):
        order = _make_order()
        order.advance("confirmed", "admin-1", note="Looks good", commission_rate=2.5)
        history = order.sorted_history()
        assert [entry.status for entry in history] == ["pending", "confirmed"]
        assert [entry.sequence for entry in history] == [0, 1]
        assert history[1].changed_by == "admin-1"
        assert history[1].note == "Looks good"

    def test_zero_subtotal_none_policy(self):
        order = Order.place(
            customer_id="cust-001",
            items_data=[
                {"book_id": "free-1", "title": "F", "seller_id": "seller-a", "quantity": 1, "unit_price_at_purchase": 0.0},
                {"book_id": "free-2", "title": "G", "seller_id": "seller-b", "quantity": 1, "unit_price_at_purchase": 0.0},
            ],
            shipping_address=ADDRESS,
            payment_method="cash_on_delivery",
            pricing=PriceQuote(subtotal=0.0, coupon_discount=0.0, shipping_cost=70.0, total=70.0),
        )
        order.advance("confirmed", "system", commission_rate=2.5, shipping_split=ShippingSplit.NONE)
        assert [p.shipping_charges for p in order.sorted_seller_payments()] == [0.0, 0.0]

    def test_zero_subtotal_equal_policy(self):
        order = Order.place(
            customer_id="cust-001",
            items_data=[
                {"book_id": "free-1", "title": "F", "seller_id": "seller-a", "quantity": 1, "unit_price_at_purchase": 0.0},
                {"book_id": "free-2", "title": "G", "seller_id": "seller-b", "quantity": 1, "unit_price_at_purchase": 0.0},
            ],
            shipping_address=ADDRESS,
            payment_method="cash_on_delivery",
            pricing=PriceQuote(subtotal=0.0, coupon_discount=0.0, shipping_cost=70.0, total=70.0),
        )
        order.advance("confirmed", "system", commission_rate=2.5)
        assert [p.shipping_charges for p in order.sorted_seller_payments()] == [35.0, 35.0]
        assert [p.net_amount for p in order.sorted_seller_payments()] == [-35.0, -35.0]


class TestShipAndDeliver:
    def test_ship_sets_tracking_and_default_estimate(self):
        order = _order_at("confirmed")
        before = datetime.now(UTC)
        order.advance("shipped", "seller-a", tracking_number="TRK-1")
        assert order.status == "shipped"
        assert order.tracking_number == "TRK-1"
        assert order.estimated_delivery >= before + timedelta(days=5) - timedelta(seconds=5)

    def test_ship_keeps_explicit_estimate(self):
        order = _order_at("confirmed")
        eta = datetime(2030, 1, 15, tzinfo=UTC)
        order.advance("shipped", "seller-a", estimated_delivery=eta)
        assert order.estimated_delivery == eta

    def test_deliver_marks_cash_on_delivery_paid(self):
        order = _order_at("shipped")
        order.advance("delivered", "courier")
        assert order.status == "delivered"
        assert order.delivered_at is not None
        assert order.payment_status == PaymentStatus.PAID.value

    def test_settlements_survive_delivery(self):
        order = _order_at("delivered")
        assert len(order.seller_payments) == 2


class TestCancelAndReturn:
    def test_cancel_confirmed_order_restores_stock_flag(self):
        order = _order_at("confirmed")
        order.advance("cancelled", "cust-001", note="Changed my mind")
        assert order.status == "cancelled"
        assert order.stock_restored is True
        assert order.cancellation_reason == "Changed my mind"
        assert _event_names(order) == ["StockRestored", "OrderStatusChanged", "OrderCancelled"]

    def test_cancel_pending_order_has_nothing_to_restore(self):
        order = _order_at("pending")
        order.advance("cancelled", "cust-001", note="Oops")
        assert order.stock_restored is False
        assert not any(isinstance(e, StockRestored) for e in order._events)

    def test_unpaid_cancellation_is_not_refund_eligible(self):
        order = _order_at("confirmed")
        order.advance("cancelled", "cust-001", note="Oops")
        assert order.refund_eligible is False
        cancelled = order._events[-1]
        assert isinstance(cancelled, OrderCancelled)
        assert cancelled.refund_eligible == "False"

    def test_return_of_paid_order_is_refund_eligible(self):
        order = _order_at("delivered")
        order.advance("returned", "admin-1", note="Damaged")
        assert order.status == "returned"
        assert order.stock_restored is True
        assert order.refund_eligible is True

    def test_cancelled_is_terminal(self):
        order = _order_at("confirmed")
        order.advance("cancelled", "cust-001")
        with pytest.raises(InvalidTransitionError):
            order.advance("confirmed", "admin-1", commission_rate=2.5)

    def test_delivered_cannot_be_cancelled(self):
        order = _order_at("delivered")
        with pytest.raises(NotCancellableError):
            order.advance("cancelled", "cust-001")
        assert order.status == "delivered"
        assert order._events == []


class TestTransitionWithLedger:
    def test_confirm_reserves_stock(self, ledger, catalog):
        order = _make_order()
        transition(order, OrderStatus.CONFIRMED, "system", ledger=ledger)
        assert catalog.stock_of("book-a1") == 8
        assert catalog.stock_of("book-b1") == 1
        assert ledger.reservation_for(order.id) == {"book-a1": 2, "book-b1": 2}
        assert isinstance(order._events[0], StockReserved)

    def test_insufficient_stock_leaves_order_and_stock_untouched(self, ledger, catalog):
        order = Order.place(
            customer_id="cust-001",
            items_data=[
                {"book_id": "book-a1", "title": "A", "seller_id": "seller-a", "quantity": 2, "unit_price_at_purchase": 300.0},
                {"book_id": "book-c1", "title": "C", "seller_id": "seller-c", "quantity": 2, "unit_price_at_purchase": 450.0},
            ],
            shipping_address=ADDRESS,
            payment_method="razorpay",
            pricing=PriceQuote(subtotal=1500.0, coupon_discount=0.0, shipping_cost=70.0, total=1570.0),
        )
        with pytest.raises(InsufficientStockError) as exc:
            transition(order, "confirmed", "system", ledger=ledger)
        assert exc.value.book_id == "book-c1"
        assert exc.value.available == 1
        assert order.status == "pending"
        assert order.stock_reserved is False
        assert catalog.stock_of("book-a1") == 10
        assert catalog.stock_of("book-c1") == 1

    def test_cancel_after_confirm_puts_stock_back(self, ledger, catalog):
        order = _make_order()
        transition(order, "confirmed", "system", ledger=ledger)
        cancel_order(order, "Changed my mind", "cust-001", ledger=ledger)
        assert order.status == "cancelled"
        assert catalog.stock_of("book-a1") == 10
        assert catalog.stock_of("book-b1") == 3

    def test_cancel_pending_does_not_touch_stock(self, ledger, catalog):
        order = _make_order()
        cancel_order(order, "Oops", "cust-001", ledger=ledger)
        assert catalog.stock_of("book-a1") == 10

    def test_return_after_delivery_puts_stock_back(self, ledger, catalog):
        order = _make_order()
        for status in ("confirmed", "shipped", "delivered"):
            transition(order, status, "admin-1", ledger=ledger)
        assert catalog.stock_of("book-a1") == 8
        transition(order, "returned", "admin-1", note="Damaged", ledger=ledger)
        assert catalog.stock_of("book-a1") == 10
        assert catalog.stock_of("book-b1") == 3

    def test_cancel_delivered_order_fails_before_touching_stock(self, ledger, catalog):
        order = _make_order()
        for status in ("confirmed", "shipped", "delivered"):
            transition(order, status, "admin-1", ledger=ledger)
        with pytest.raises(NotCancellableError):
            cancel_order(order, "Too late", "cust-001", ledger=ledger)
        assert catalog.stock_of("book-a1") == 8

    def test_commission_rate_comes_from_settings(self, ledger, settings):
        order = _make_order()
        transition(
            order,
            "confirmed",
            "system",
            ledger=ledger,
            settings=settings.model_copy(update={"commission_rate": 5.0}),
        )
        assert all(p.commission_rate == 5.0 for p in order.seller_payments)
