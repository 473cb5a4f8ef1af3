"""Order aggregate (CQRS): the financial record of a customer's purchase.

The order is persisted as one document embedding its items, per-seller
settlements and status history. It is created once at checkout and then
changed only through named operations (``advance``, ``cancel``,
``process_refund``, ``correct_shipping_cost``, ``override_commission``,
``mark_seller_paid``); each one keeps the money invariants intact:

    total == subtotal - coupon_discount + shipping_cost
    subtotal == sum(unit_price_at_purchase * quantity)
    sum(seller_payments.items_total) == subtotal
    0 <= refund_amount <= total

Stock ledger calls happen in the command handlers. The aggregate only records
that stock was reserved or restored, via the ``stock_reserved`` and
``stock_restored`` flags, so each effect is applied once per order.
"""

import json
import secrets
import time
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from bookorders.config import ShippingSplit
from bookorders.domain import bookorders
from bookorders.errors import (
    AlreadyPaidError,
    InvalidRefundAmountError,
    PaymentNotFoundError,
)
from bookorders.order.events import (
    CommissionOverridden,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentCaptured,
    PaymentIntentCreated,
    RefundProcessed,
    SellerPaymentMarkedPaid,
    SettlementComputed,
    StockReserved,
    StockRestored,
)
from bookorders.order.state_machine import (
    STOCK_RESTORING_STATES,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    assert_transition,
    can_be_cancelled,
)
from bookorders.settlement.calculator import calculate_settlements, compute_line, to_money

# Money comparisons tolerate float representation error below half a paisa
_TOLERANCE = 0.005

DEFAULT_DELIVERY_DAYS = 5


class SettlementStatus(Enum):
    DUE = "due"
    PAID = "paid"


def generate_order_number() -> str:
    """Human-readable order number: ``ORD`` + epoch millis + 6 hex chars."""
    return f"ORD{int(time.time() * 1000)}{secrets.token_hex(3).upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@bookorders.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships to, captured at checkout and never edited."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=6)
    country = String(max_length=100, default="India")
    landmark = String(max_length=255)


@bookorders.value_object(part_of="Order")
class CouponSnapshot:
    """The coupon as it was when the order was placed.

    Later edits to (or deletion of) the coupon never change this copy.
    """

    code = String(required=True, max_length=50)
    description = String(max_length=255)
    discount_type = String(required=True, max_length=20)  # "percentage" or "fixed"
    value = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@bookorders.entity(part_of="Order")
class OrderItem:
    """A line of the order. Title, seller and price are snapshots from the catalog."""

    book_id = Identifier(required=True)
    title = String(max_length=255)
    seller_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price_at_purchase = Float(required=True, min_value=0.0)
    position = Integer(default=0)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price_at_purchase) * self.quantity


@bookorders.entity(part_of="Order")
class SellerPayment:
    """What the platform owes one seller for their items in this order."""

    seller_id = Identifier(required=True)
    items_total = Float(required=True, min_value=0.0)
    shipping_charges = Float(default=0.0)
    commission_rate = Float(required=True, min_value=0.0, max_value=100.0)
    admin_commission = Float(default=0.0)
    net_amount = Float(default=0.0)
    payment_status = String(choices=SettlementStatus, default=SettlementStatus.DUE.value)
    paid_by = String(max_length=100)
    paid_at = DateTime()
    notes = Text()
    position = Integer(default=0)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == SettlementStatus.PAID.value


@bookorders.entity(part_of="Order")
class StatusChange:
    """One audit trail entry. Entries are appended and never edited."""

    status = String(choices=OrderStatus, required=True)
    changed_by = String(required=True, max_length=100)
    changed_at = DateTime(required=True)
    note = String(max_length=500)
    sequence = Integer(required=True, min_value=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@bookorders.aggregate
class Order:
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_method = String(required=True, max_length=50)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    items = HasMany(OrderItem)
    seller_payments = HasMany(SellerPayment)
    status_history = HasMany(StatusChange)
    shipping_address = ValueObject(ShippingAddress)
    applied_coupon = ValueObject(CouponSnapshot)

    subtotal = Float(default=0.0, min_value=0.0)
    coupon_discount = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="INR")

    refund_eligible = Boolean(default=False)
    refund_amount = Float(default=0.0, min_value=0.0)
    refund_reason = String(max_length=500)
    refunded_at = DateTime()

    stock_reserved = Boolean(default=False)
    stock_restored = Boolean(default=False)

    tracking_number = String(max_length=255)
    estimated_delivery = DateTime()
    delivered_at = DateTime()
    cancellation_reason = String(max_length=500)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)
    seller_index = String(max_length=2000)  # "|seller-a|seller-b|" for seller listings
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def total_must_balance(self):
        expected = (self.subtotal or 0.0) - (self.coupon_discount or 0.0) + (self.shipping_cost or 0.0)
        if abs((self.total or 0.0) - expected) > _TOLERANCE:
            raise ValidationError({"total": ["Total must equal subtotal - coupon discount + shipping cost"]})

    @invariant.post
    def subtotal_must_match_items(self):
        if not self.items:
            return
        expected = float(sum((item.line_total for item in self.items), Decimal("0")))
        if abs((self.subtotal or 0.0) - expected) > _TOLERANCE:
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of item lines"]})

    @invariant.post
    def settlements_must_cover_subtotal(self):
        if not self.seller_payments:
            return
        settled = sum(payment.items_total for payment in self.seller_payments)
        if abs(settled - (self.subtotal or 0.0)) > _TOLERANCE:
            raise ValidationError({"seller_payments": ["Seller items totals must add up to the subtotal"]})

    @invariant.post
    def refund_cannot_exceed_total(self):
        if (self.refund_amount or 0.0) > (self.total or 0.0) + _TOLERANCE:
            raise ValidationError({"refund_amount": ["Refund amount cannot exceed the order total"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        items_data,
        shipping_address,
        payment_method,
        pricing,
        coupon_snapshot=None,
        currency="INR",
        order_number=None,
    ):
        """Create a pending order from validated checkout data.

        Args:
            customer_id: The customer placing the order.
            items_data: List of dicts with book_id, title, seller_id,
                        quantity, unit_price_at_purchase.
            shipping_address: Dict with street, city, state, postal_code,
                              country, landmark.
            payment_method: ``cash_on_delivery`` or a gateway method.
            pricing: ``PriceQuote`` (or any object) with subtotal,
                     coupon_discount, shipping_cost and total.
            coupon_snapshot: Optional dict with code, description, discount_type, value.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        items = [
            OrderItem(
                book_id=item["book_id"],
                title=item.get("title"),
                seller_id=item["seller_id"],
                quantity=item["quantity"],
                unit_price_at_purchase=item["unit_price_at_purchase"],
                position=position,
            )
            for position, item in enumerate(items_data)
        ]
        seller_ids = list(dict.fromkeys(str(item["seller_id"]) for item in items_data))

        order = cls(
            id=order_number or generate_order_number(),
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            items=items,
            status_history=[
                StatusChange(
                    status=OrderStatus.PENDING.value,
                    changed_by=str(customer_id),
                    changed_at=now,
                    note="Order placed",
                    sequence=0,
                )
            ],
            shipping_address=ShippingAddress(**shipping_address),
            applied_coupon=CouponSnapshot(**coupon_snapshot) if coupon_snapshot else None,
            subtotal=pricing.subtotal,
            coupon_discount=pricing.coupon_discount,
            shipping_cost=pricing.shipping_cost,
            total=pricing.total,
            currency=currency,
            seller_index="|" + "|".join(seller_ids) + "|",
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                seller_ids=json.dumps(seller_ids),
                items=json.dumps(
                    [
                        {
                            "book_id": str(item.book_id),
                            "title": item.title,
                            "seller_id": str(item.seller_id),
                            "quantity": item.quantity,
                            "unit_price_at_purchase": item.unit_price_at_purchase,
                        }
                        for item in order.sorted_items()
                    ]
                ),
                subtotal=order.subtotal,
                coupon_discount=order.coupon_discount,
                shipping_cost=order.shipping_cost,
                total=order.total,
                currency=currency,
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    def sorted_items(self):
        return sorted(self.items, key=lambda item: item.position or 0)

    def sorted_history(self):
        return sorted(self.status_history, key=lambda entry: entry.sequence)

    def sorted_seller_payments(self):
        return sorted(self.seller_payments, key=lambda payment: payment.position or 0)

    def seller_ids(self) -> list[str]:
        return list(dict.fromkeys(str(item.seller_id) for item in self.sorted_items()))

    def stock_lines(self) -> list[dict]:
        """Quantities per book, as handed to the stock ledger."""
        lines: dict[str, int] = {}
        for item in self.sorted_items():
            lines[str(item.book_id)] = lines.get(str(item.book_id), 0) + item.quantity
        return [{"book_id": book_id, "quantity": quantity} for book_id, quantity in lines.items()]

    def seller_payment_for(self, seller_id):
        payment = next((p for p in self.seller_payments if str(p.seller_id) == str(seller_id)), None)
        if payment is None:
            raise PaymentNotFoundError(str(self.id), seller_id)
        return payment

    def can_be_cancelled(self) -> bool:
        return can_be_cancelled(self.status)

    def is_cash_on_delivery(self) -> bool:
        return self.payment_method == PaymentMethod.CASH_ON_DELIVERY.value

    def payment_captured(self) -> bool:
        return self.payment_status in (
            PaymentStatus.PAID.value,
            PaymentStatus.PARTIALLY_REFUNDED.value,
            PaymentStatus.REFUNDED.value,
        )

    def needs_stock_reservation(self, target) -> bool:
        return OrderStatus(target) == OrderStatus.CONFIRMED and not self.stock_reserved

    def needs_stock_restore(self, target) -> bool:
        return OrderStatus(target) in STOCK_RESTORING_STATES and self.stock_reserved and not self.stock_restored

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def advance(
        self,
        target,
        actor,
        note=None,
        commission_rate=None,
        shipping_split=ShippingSplit.EQUAL,
        tracking_number=None,
        estimated_delivery=None,
    ):
        """Move the order to ``target`` and apply that status's entry effects.

        Raises ``InvalidTransitionError`` (``NotCancellableError`` for
        cancellation) before anything changes when the move is not allowed.
        ``commission_rate`` is required when entering ``confirmed`` for the
        first time, since that is when settlements are computed.
        """
        target = OrderStatus(target)
        assert_transition(self.status, target)
        if target == OrderStatus.CONFIRMED and not self.seller_payments and commission_rate is None:
            raise ValidationError({"commission_rate": ["A commission rate is required to settle the order"]})

        previous = self.status
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = target.value

            if target == OrderStatus.CONFIRMED:
                self._enter_confirmed(commission_rate, shipping_split)
            elif target == OrderStatus.SHIPPED:
                self.tracking_number = tracking_number or self.tracking_number
                self.estimated_delivery = estimated_delivery or now + timedelta(days=DEFAULT_DELIVERY_DAYS)
            elif target == OrderStatus.DELIVERED:
                self.delivered_at = now
                if self.is_cash_on_delivery() and self.payment_status == PaymentStatus.PENDING.value:
                    self.payment_status = PaymentStatus.PAID.value
            elif target in STOCK_RESTORING_STATES:
                self._enter_reversal(target, note)

            self._record_history(target.value, actor, now, note)
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                from_status=previous,
                to_status=target.value,
                changed_by=str(actor),
                note=note,
                tracking_number=self.tracking_number,
                changed_at=now,
            )
        )
        if target == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    customer_id=str(self.customer_id),
                    previous_status=previous,
                    reason=note,
                    cancelled_by=str(actor),
                    refund_eligible=str(self.refund_eligible),
                    cancelled_at=now,
                )
            )

    def _enter_confirmed(self, commission_rate, shipping_split):
        if not self.stock_reserved:
            self.stock_reserved = True
            self.raise_(StockReserved(order_id=str(self.id), lines=json.dumps(self.stock_lines())))
        if not self.seller_payments:
            self._settle(commission_rate, shipping_split)

    def _enter_reversal(self, target, note):
        if self.stock_reserved and not self.stock_restored:
            self.stock_restored = True
            self.raise_(StockRestored(order_id=str(self.id), lines=json.dumps(self.stock_lines())))
        if self.payment_captured() and (self.refund_amount or 0.0) < (self.total or 0.0) - _TOLERANCE:
            self.refund_eligible = True
        if target == OrderStatus.CANCELLED:
            self.cancellation_reason = note

    def _record_history(self, status, actor, at, note):
        sequence = max((entry.sequence for entry in self.status_history), default=-1) + 1
        self.add_status_history(
            StatusChange(
                status=status,
                changed_by=str(actor),
                changed_at=at,
                note=note,
                sequence=sequence,
            )
        )

    # -------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------
    def _settle(self, commission_rate, shipping_split):
        lines = calculate_settlements(self.sorted_items(), self.shipping_cost, commission_rate, shipping_split)
        for position, line in enumerate(lines):
            self.add_seller_payments(
                SellerPayment(
                    seller_id=line.seller_id,
                    items_total=line.items_total,
                    shipping_charges=line.shipping_charges,
                    commission_rate=line.commission_rate,
                    admin_commission=line.admin_commission,
                    net_amount=line.net_amount,
                    payment_status=SettlementStatus.DUE.value,
                    position=position,
                )
            )
        self._raise_settlement_computed("initial")

    def correct_shipping_cost(self, shipping_cost, actor, shipping_split=ShippingSplit.EQUAL):
        """Replace the shipping cost and recompute totals and due settlements.

        Paid settlements keep their historical amounts. Each due settlement
        keeps its frozen commission rate.
        """
        if shipping_cost is None or shipping_cost < 0:
            raise ValidationError({"shipping_cost": ["Shipping cost must be zero or more"]})
        if OrderStatus(self.status) in STOCK_RESTORING_STATES:
            raise ValidationError({"status": [f"Shipping cannot be corrected on a {self.status} order"]})

        new_cost = float(to_money(shipping_cost))
        new_total = float(to_money(self.subtotal) - to_money(self.coupon_discount) + to_money(new_cost))
        if (self.refund_amount or 0.0) > new_total + _TOLERANCE:
            raise ValidationError({"shipping_cost": ["New total would be below the amount already refunded"]})

        previous_cost = self.shipping_cost
        now = datetime.now(UTC)
        with atomic_change(self):
            self.shipping_cost = new_cost
            self.total = new_total
            if self.seller_payments:
                self._recompute_due(shipping_split)
            self._record_history(
                self.status,
                actor,
                now,
                f"Shipping cost corrected from {previous_cost:.2f} to {new_cost:.2f}",
            )
            self.updated_at = now

        if self.seller_payments:
            self._raise_settlement_computed("shipping_corrected")

    def _recompute_due(self, shipping_split):
        rates = {str(p.seller_id): p.commission_rate for p in self.seller_payments}
        # The platform rate argument is unused when every seller has a frozen rate
        lines = calculate_settlements(
            self.sorted_items(), self.shipping_cost, 0.0, shipping_split, rate_overrides=rates
        )
        for line in lines:
            payment = self.seller_payment_for(line.seller_id)
            if payment.is_paid:
                continue
            payment.items_total = line.items_total
            payment.shipping_charges = line.shipping_charges
            payment.admin_commission = line.admin_commission
            payment.net_amount = line.net_amount

    def override_commission(self, seller_id, commission_rate, actor):
        """Set a per-order commission rate for one seller's due settlement."""
        if commission_rate is None or not 0 <= commission_rate <= 100:
            raise ValidationError({"commission_rate": ["Commission rate must be between 0 and 100"]})

        payment = self.seller_payment_for(seller_id)
        if payment.is_paid:
            raise AlreadyPaidError(seller_id)

        previous_rate = payment.commission_rate
        line = compute_line(payment.seller_id, payment.items_total, payment.shipping_charges, commission_rate)
        with atomic_change(self):
            payment.commission_rate = line.commission_rate
            payment.admin_commission = line.admin_commission
            payment.net_amount = line.net_amount
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CommissionOverridden(
                order_id=str(self.id),
                seller_id=str(seller_id),
                previous_rate=previous_rate,
                new_rate=line.commission_rate,
                admin_commission=line.admin_commission,
                net_amount=line.net_amount,
                overridden_by=str(actor),
            )
        )

    def mark_seller_paid(self, seller_id, actor, notes=None):
        """Record the payout of one seller's settlement. Amounts stay as they are."""
        payment = self.seller_payment_for(seller_id)
        if payment.is_paid:
            raise AlreadyPaidError(seller_id)

        now = datetime.now(UTC)
        with atomic_change(self):
            payment.payment_status = SettlementStatus.PAID.value
            payment.paid_by = str(actor)
            payment.paid_at = now
            if notes:
                payment.notes = f"{payment.notes}\n{notes}" if payment.notes else notes
            self.updated_at = now

        self.raise_(
            SellerPaymentMarkedPaid(
                order_id=str(self.id),
                seller_id=str(seller_id),
                net_amount=payment.net_amount,
                paid_by=str(actor),
                paid_at=now,
            )
        )

    def _raise_settlement_computed(self, reason):
        self.raise_(
            SettlementComputed(
                order_id=str(self.id),
                settlements=json.dumps(
                    [
                        {
                            "seller_id": str(p.seller_id),
                            "items_total": p.items_total,
                            "shipping_charges": p.shipping_charges,
                            "commission_rate": p.commission_rate,
                            "admin_commission": p.admin_commission,
                            "net_amount": p.net_amount,
                            "payment_status": p.payment_status,
                        }
                        for p in self.sorted_seller_payments()
                    ]
                ),
                shipping_cost=self.shipping_cost,
                reason=reason,
            )
        )

    # -------------------------------------------------------------------
    # Money back
    # -------------------------------------------------------------------
    def process_refund(self, amount, reason, actor):
        """Give back part or all of the order total. The status is not changed."""
        if amount is None:
            raise InvalidRefundAmountError("Refund amount must be greater than zero")
        # Paise are the smallest unit refunded
        rounded = to_money(amount)
        if rounded <= 0:
            raise InvalidRefundAmountError("Refund amount must be greater than zero")

        refunded = float(rounded)
        new_refund_total = float(to_money(self.refund_amount or 0.0) + rounded)
        if new_refund_total > (self.total or 0.0) + _TOLERANCE:
            raise InvalidRefundAmountError(
                f"Refund of {amount:.2f} would exceed the order total of {self.total:.2f} "
                f"({self.refund_amount or 0.0:.2f} already refunded)"
            )

        fully_refunded = new_refund_total >= (self.total or 0.0) - _TOLERANCE
        now = datetime.now(UTC)
        with atomic_change(self):
            self.refund_amount = new_refund_total
            self.payment_status = (
                PaymentStatus.REFUNDED.value if fully_refunded else PaymentStatus.PARTIALLY_REFUNDED.value
            )
            self.refund_reason = reason
            self.refunded_at = now
            if fully_refunded:
                self.refund_eligible = False
            note = f"Refund of {refunded:.2f} processed" + (f": {reason}" if reason else "")
            self._record_history(self.status, actor, now, note[:500])
            self.updated_at = now

        self.raise_(
            RefundProcessed(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                amount=refunded,
                refund_total=new_refund_total,
                payment_status=self.payment_status,
                reason=reason,
                processed_by=str(actor),
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Gateway payment
    # -------------------------------------------------------------------
    def record_payment_intent(self, gateway_order_id):
        if self.is_cash_on_delivery():
            raise ValidationError({"payment_method": ["Cash on delivery orders are not paid online"]})
        if self.status != OrderStatus.PENDING.value or self.payment_status != PaymentStatus.PENDING.value:
            raise ValidationError({"status": ["Payment can only be started for a pending, unpaid order"]})

        self.gateway_order_id = gateway_order_id
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PaymentIntentCreated(
                order_id=str(self.id),
                gateway_order_id=gateway_order_id,
                amount=self.total,
                currency=self.currency,
            )
        )

    def record_payment(self, gateway_order_id, gateway_payment_id, actor):
        """Mark a verified gateway payment as captured."""
        if self.payment_status != PaymentStatus.PENDING.value:
            raise ValidationError({"payment_status": [f"Payment already recorded as {self.payment_status}"]})
        if not self.gateway_order_id:
            raise ValidationError({"gateway_order_id": ["No payment was started for this order"]})
        if self.gateway_order_id != gateway_order_id:
            raise ValidationError({"gateway_order_id": ["Gateway order does not belong to this order"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.gateway_payment_id = gateway_payment_id
            self.payment_status = PaymentStatus.PAID.value
            if OrderStatus(self.status) in STOCK_RESTORING_STATES:
                # Paid after the order was already closed
                self.refund_eligible = True
            self._record_history(self.status, actor, now, f"Payment {gateway_payment_id} captured")
            self.updated_at = now

        self.raise_(
            PaymentCaptured(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                amount=self.total,
                captured_at=now,
            )
        )
