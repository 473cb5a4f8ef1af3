"""Application tests for placing orders."""

import json
from unittest.mock import MagicMock

import pytest
from bookorders.coupons import set_coupon_service
from bookorders.errors import BookNotFoundError, ExternalServiceError, InsufficientStockError, InvalidCouponError
from bookorders.order.creation import PlaceOrder, parse_items
from bookorders.order.order import Order
from protean import current_domain
from protean.exceptions import ValidationError

ADDRESS = {"street": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "postal_code": "560001"}


def _place_order(items=None, payment_method="cash_on_delivery", coupon_code=None, address=None):
    return current_domain.process(
        PlaceOrder(
            customer_id="cust-001",
            items=json.dumps(items or [{"book_id": "book-a1", "quantity": 2}, {"book_id": "book-b1", "quantity": 2}]),
            shipping_address=json.dumps(address or ADDRESS),
            payment_method=payment_method,
            coupon_code=coupon_code,
        ),
        asynchronous=False,
    )


def _get(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestCashOnDelivery:
    def test_order_is_confirmed_immediately(self):
        order = _get(_place_order())
        assert order.status == "confirmed"
        assert order.payment_status == "pending"
        assert order.stock_reserved is True

    def test_stock_is_decremented(self, catalog):
        _place_order()
        assert catalog.stock_of("book-a1") == 8
        assert catalog.stock_of("book-b1") == 1

    def test_prices_and_titles_come_from_the_catalog(self):
        order = _get(_place_order())
        items = {item.book_id: item for item in order.items}
        assert items["book-a1"].unit_price_at_purchase == 300.0
        assert items["book-a1"].title == "The Dispossessed"
        assert items["book-b1"].seller_id == "seller-b"

    def test_totals(self):
        order = _get(_place_order())
        assert order.subtotal == 1000.0
        assert order.shipping_cost == 70.0
        assert order.total == 1070.0
        assert order.currency == "INR"

    def test_seller_settlements(self):
        order = _get(_place_order())
        payments = {p.seller_id: p for p in order.seller_payments}
        assert (payments["seller-a"].shipping_charges, payments["seller-a"].admin_commission, payments["seller-a"].net_amount) == (42.0, 15.0, 543.0)
        assert (payments["seller-b"].shipping_charges, payments["seller-b"].admin_commission, payments["seller-b"].net_amount) == (28.0, 10.0, 362.0)

    def test_history(self):
        order = _get(_place_order())
        history = order.sorted_history()
        assert [entry.status for entry in history] == ["pending", "confirmed"]
        assert history[1].changed_by == "system"
        assert history[1].note == "Cash on delivery order confirmed"

    def test_repeated_books_are_merged(self, catalog):
        order = _get(
            _place_order(items=[{"book_id": "book-a1", "quantity": 1}, {"book_id": "book-a1", "quantity": 2}])
        )
        assert len(order.items) == 1
        assert order.items[0].quantity == 3
        assert catalog.stock_of("book-a1") == 7

    def test_price_changes_after_placement_do_not_touch_the_order(self, catalog):
        order_id = _place_order()
        catalog.set_price("book-a1", 999.0)
        order = _get(order_id)
        assert order.subtotal == 1000.0
        assert {i.book_id: i.unit_price_at_purchase for i in order.items}["book-a1"] == 300.0


class TestGatewayPayment:
    def test_order_waits_for_payment(self, catalog):
        order = _get(_place_order(payment_method="razorpay"))
        assert order.status == "pending"
        assert order.stock_reserved is False
        assert len(order.seller_payments) == 0
        assert catalog.stock_of("book-a1") == 10


class TestCoupons:
    def test_discount_applied(self):
        order = _get(_place_order(coupon_code="SAVE10"))
        assert order.coupon_discount == 100.0
        assert order.total == 970.0

    def test_coupon_is_redeemed(self, coupons):
        _place_order(coupon_code="SAVE10")
        assert coupons.get("SAVE10").used_count == 1

    def test_snapshot_survives_coupon_deletion(self, coupons):
        order_id = _place_order(coupon_code="SAVE10")
        coupons.delete_coupon("SAVE10")
        order = _get(order_id)
        assert order.applied_coupon.code == "SAVE10"
        assert order.applied_coupon.discount_type == "percentage"
        assert order.applied_coupon.value == 10.0
        assert order.coupon_discount == 100.0

    def test_invalid_coupon_aborts(self, catalog):
        with pytest.raises(InvalidCouponError):
            _place_order(coupon_code="BOGUS")
        assert catalog.stock_of("book-a1") == 10

    def test_coupon_service_outage(self, catalog):
        broken = MagicMock()
        broken.validate.side_effect = ConnectionError("refused")
        set_coupon_service(broken)
        with pytest.raises(ExternalServiceError):
            _place_order(coupon_code="SAVE10")
        assert catalog.stock_of("book-a1") == 10

    def test_redeem_failure_does_not_fail_the_order(self, coupons):
        coupons.redeem = MagicMock(side_effect=ConnectionError("refused"))
        order = _get(_place_order(coupon_code="SAVE10"))
        assert order.status == "confirmed"


class TestRejectedOrders:
    def test_unknown_book(self, catalog):
        with pytest.raises(BookNotFoundError):
            _place_order(items=[{"book_id": "book-a1", "quantity": 1}, {"book_id": "missing", "quantity": 1}])
        assert catalog.stock_of("book-a1") == 10

    def test_insufficient_stock_is_all_or_nothing(self, catalog):
        with pytest.raises(InsufficientStockError) as exc:
            _place_order(items=[{"book_id": "book-a1", "quantity": 2}, {"book_id": "book-b1", "quantity": 4}])
        assert exc.value.book_id == "book-b1"
        assert exc.value.available == 3
        assert catalog.stock_of("book-a1") == 10
        assert catalog.stock_of("book-b1") == 3

    def test_nothing_is_saved(self):
        with pytest.raises(InsufficientStockError):
            _place_order(items=[{"book_id": "book-c1", "quantity": 2}])
        assert current_domain.repository_for(Order)._dao.query.all().total == 0

    def test_invalid_postal_code(self, catalog):
        with pytest.raises(ValidationError) as exc:
            _place_order(address={**ADDRESS, "postal_code": "012345"})
        assert "postal_code" in exc.value.messages
        assert catalog.stock_of("book-a1") == 10

    def test_missing_postal_code(self):
        address = {k: v for k, v in ADDRESS.items() if k != "postal_code"}
        with pytest.raises(ValidationError):
            _place_order(address=address)

    def test_address_must_be_json(self):
        with pytest.raises(ValidationError):
            current_domain.process(
                PlaceOrder(
                    customer_id="cust-001",
                    items=json.dumps([{"book_id": "book-a1", "quantity": 1}]),
                    shipping_address="not json",
                    payment_method="cash_on_delivery",
                ),
                asynchronous=False,
            )


class TestParseItems:
    def test_merges_duplicates(self):
        assert parse_items([{"book_id": "b1", "quantity": 1}, {"book_id": "b1", "quantity": 4}]) == {"b1": 5}

    @pytest.mark.parametrize(
        "items",
        [
            [],
            "[]",
            "not json",
            [{"book_id": "b1", "quantity": 0}],
            [{"book_id": "b1", "quantity": "2"}],
            [{"book_id": "b1", "quantity": 1.5}],
            [{"book_id": "b1", "quantity": True}],
            [{"book_id": "", "quantity": 1}],
            [{"quantity": 1}],
            ["b1"],
            [{"book_id": "b1", "quantity": 101}],
            [{"book_id": "b1", "quantity": 60}, {"book_id": "b1", "quantity": 60}],
        ],
    )
    def test_rejects_bad_items(self, items):
        with pytest.raises(ValidationError):
            parse_items(items)
