"""Tests for the seller settlement calculator."""

from decimal import Decimal

import pytest
from bookorders.config import ShippingSplit
from bookorders.settlement.calculator import (
    allocate_shipping,
    calculate_settlements,
    compute_line,
    group_items_by_seller,
    to_money,
)


def _item(seller_id, price, quantity):
    return {"seller_id": seller_id, "unit_price_at_purchase": price, "quantity": quantity}


class TestToMoney:
    def test_rounds_half_up_to_paise(self):
        assert to_money(10.005) == Decimal("10.01")
        assert to_money("2.344") == Decimal("2.34")

    def test_integers(self):
        assert to_money(70) == Decimal("70.00")


class TestGroupItemsBySeller:
    def test_sums_lines_per_seller_in_first_appearance_order(self):
        totals = group_items_by_seller(
            [_item("seller-b", 200.0, 2), _item("seller-a", 300.0, 1), _item("seller-b", 50.0, 1)]
        )
        assert list(totals) == ["seller-b", "seller-a"]
        assert totals["seller-b"] == Decimal("450.00")
        assert totals["seller-a"] == Decimal("300.00")

    def test_reads_attributes_of_objects(self):
        class Line:
            seller_id = "seller-a"
            unit_price_at_purchase = 99.99
            quantity = 3

        assert group_items_by_seller([Line()]) == {"seller-a": Decimal("299.97")}


class TestAllocateShipping:
    def test_proportional_split(self):
        shares = allocate_shipping({"a": Decimal("600"), "b": Decimal("400")}, 70)
        assert shares == {"a": Decimal("42.00"), "b": Decimal("28.00")}

    def test_rounding_remainder_goes_to_last_seller(self):
        shares = allocate_shipping({"a": Decimal("100"), "b": Decimal("100"), "c": Decimal("100")}, 100)
        assert shares["a"] == Decimal("33.33")
        assert shares["b"] == Decimal("33.33")
        assert shares["c"] == Decimal("33.34")
        assert sum(shares.values()) == Decimal("100.00")

    def test_zero_subtotal_splits_equally_by_default(self):
        shares = allocate_shipping({"a": Decimal("0"), "b": Decimal("0")}, 70)
        assert shares == {"a": Decimal("35.00"), "b": Decimal("35.00")}

    def test_zero_subtotal_with_none_policy_charges_no_seller(self):
        shares = allocate_shipping({"a": Decimal("0"), "b": Decimal("0")}, 70, ShippingSplit.NONE)
        assert shares == {"a": Decimal("0.00"), "b": Decimal("0.00")}

    def test_zero_shipping(self):
        shares = allocate_shipping({"a": Decimal("600"), "b": Decimal("400")}, 0)
        assert shares == {"a": Decimal("0.00"), "b": Decimal("0.00")}

    def test_no_sellers(self):
        assert allocate_shipping({}, 70) == {}


class TestComputeLine:
    def test_commission_and_net(self):
        line = compute_line("seller-a", 600.0, 42.0, 2.5)
        assert line.admin_commission == 15.0
        assert line.net_amount == 543.0

    def test_net_can_be_negative_for_a_free_book(self):
        line = compute_line("seller-b", 0.0, 35.0, 2.5)
        assert line.admin_commission == 0.0
        assert line.net_amount == -35.0

    def test_commission_rounded_half_up(self):
        # 333.33 * 2.5% = 8.33325
        line = compute_line("seller-a", 333.33, 0.0, 2.5)
        assert line.admin_commission == 8.33


class TestCalculateSettlements:
    def test_two_sellers(self):
        lines = calculate_settlements(
            [_item("seller-a", 300.0, 2), _item("seller-b", 200.0, 2)],
            shipping_cost=70.0,
            commission_rate=2.5,
        )
        by_seller = {line.seller_id: line for line in lines}

        assert by_seller["seller-a"].items_total == 600.0
        assert by_seller["seller-a"].shipping_charges == 42.0
        assert by_seller["seller-a"].admin_commission == 15.0
        assert by_seller["seller-a"].net_amount == 543.0

        assert by_seller["seller-b"].items_total == 400.0
        assert by_seller["seller-b"].shipping_charges == 28.0
        assert by_seller["seller-b"].admin_commission == 10.0
        assert by_seller["seller-b"].net_amount == 362.0

    def test_single_seller_takes_all_shipping(self):
        [line] = calculate_settlements([_item("seller-a", 150.0, 3)], 50.0, 2.5)
        assert line.items_total == 450.0
        assert line.shipping_charges == 50.0
        assert line.net_amount == 450.0 - 11.25 - 50.0

    def test_shares_always_add_up_to_shipping_cost(self):
        lines = calculate_settlements(
            [_item("a", 10.01, 1), _item("b", 20.02, 1), _item("c", 30.03, 1)],
            shipping_cost=99.99,
            commission_rate=5,
        )
        assert sum(to_money(line.shipping_charges) for line in lines) == Decimal("99.99")

    def test_items_totals_add_up_to_subtotal(self):
        items = [_item("a", 199.99, 3), _item("b", 0.5, 7), _item("a", 1.01, 1)]
        lines = calculate_settlements(items, 60.0, 2.5)
        assert sum(to_money(line.items_total) for line in lines) == Decimal("604.48")

    def test_rate_overrides_win_over_platform_rate(self):
        lines = calculate_settlements(
            [_item("seller-a", 300.0, 2), _item("seller-b", 200.0, 2)],
            70.0,
            2.5,
            rate_overrides={"seller-b": 10.0},
        )
        by_seller = {line.seller_id: line for line in lines}
        assert by_seller["seller-a"].commission_rate == 2.5
        assert by_seller["seller-b"].commission_rate == 10.0
        assert by_seller["seller-b"].admin_commission == 40.0

    @pytest.mark.parametrize("rate", [-1, 100.01, 250])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(ValueError):
            calculate_settlements([_item("a", 10.0, 1)], 0.0, rate)

    def test_zero_subtotal_none_policy(self):
        lines = calculate_settlements(
            [_item("a", 0.0, 1), _item("b", 0.0, 2)], 70.0, 2.5, split=ShippingSplit.NONE
        )
        assert [line.shipping_charges for line in lines] == [0.0, 0.0]
        assert [line.net_amount for line in lines] == [0.0, 0.0]
