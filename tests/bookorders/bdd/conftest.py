"""Shared BDD fixtures and step definitions for orders."""

import pytest
from bookorders.errors import InvalidTransitionError
from bookorders.order.lifecycle import transition
from bookorders.order.order import Order
from bookorders.order.pricing import PriceQuote
from pytest_bdd import given, parsers, then

ADDRESS = {"street": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "postal_code": "560001"}


@pytest.fixture()
def error():
    """Container for the error a When step ran into."""
    return {"exc": None}


def _place(lines, shipping_cost=0.0, payment_method="cash_on_delivery"):
    """Build an order straight from item lines, bypassing pricing services."""
    subtotal = sum(line["unit_price_at_purchase"] * line["quantity"] for line in lines)
    return Order.place(
        customer_id="cust-bdd",
        items_data=lines,
        shipping_address=ADDRESS,
        payment_method=payment_method,
        pricing=PriceQuote(
            subtotal=subtotal,
            coupon_discount=0.0,
            shipping_cost=shipping_cost,
            total=subtotal + shipping_cost,
        ),
    )


@pytest.fixture()
def place_order():
    return _place


@pytest.fixture()
def attempt(error, ledger):
    """Try a status change, recording a rejected move in ``error``."""

    def _attempt(order, target, note=None):
        try:
            transition(order, target, "admin-bdd", note=note, ledger=ledger)
        except InvalidTransitionError as exc:
            error["exc"] = exc
        return order

    return _attempt


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('"{book_id}" has {stock:d} copies in stock'))
def _(catalog, book_id, stock):
    info = catalog.get_book_pricing_info(book_id)
    catalog.add_book(book_id, info.title, info.price, stock, info.seller_id)


@given(
    parsers.cfparse('a cash on delivery order for {quantity:d} copies of "{book_id}"'),
    target_fixture="order",
)
def _(catalog, place_order, quantity, book_id):
    info = catalog.get_book_pricing_info(book_id)
    return place_order(
        [
            {
                "book_id": book_id,
                "title": info.title,
                "seller_id": info.seller_id,
                "quantity": quantity,
                "unit_price_at_purchase": info.price,
            }
        ]
    )


@given("the order is confirmed", target_fixture="order")
def _(order, ledger):
    return transition(order, "confirmed", "admin-bdd", ledger=ledger)


@given("the order is shipped", target_fixture="order")
def _(order, ledger):
    return transition(order, "shipped", "seller-bdd", tracking_number="TRK-BDD", ledger=ledger)


@given("the order is delivered", target_fixture="order")
def _(order, ledger):
    return transition(order, "delivered", "courier-bdd", ledger=ledger)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert order.status == status


@then(parsers.cfparse('"{book_id}" has {stock:d} copies in stock'))
def _(catalog, book_id, stock):
    assert catalog.stock_of(book_id) == stock
