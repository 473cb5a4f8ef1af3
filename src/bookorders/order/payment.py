"""Gateway payment for orders: commands and handler.

``InitiateOrderPayment`` opens a payment intent on the gateway for the order
total. ``ConfirmOrderPayment`` is the gateway callback: the signature is
verified before anything changes, the payment is recorded and the order is
confirmed. If the stock ran out while the customer was paying, the order is
cancelled instead and left refund eligible.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from bookorders.domain import bookorders
from bookorders.errors import ExternalServiceError, InsufficientStockError, PaymentVerificationError
from bookorders.gateway import get_gateway
from bookorders.order.lifecycle import SYSTEM_ACTOR, load_order, transition
from bookorders.order.order import Order
from bookorders.order.state_machine import OrderStatus, PaymentStatus

logger = structlog.get_logger(__name__)


@bookorders.command(part_of="Order")
class InitiateOrderPayment:
    order_id = Identifier(required=True)


@bookorders.command(part_of="Order")
class ConfirmOrderPayment:
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=255)
    gateway_payment_id = String(required=True, max_length=255)
    signature = String(required=True, max_length=255)


@bookorders.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(InitiateOrderPayment)
    def initiate_payment(self, command):
        order = load_order(command.order_id)
        if order.gateway_order_id and order.payment_status == PaymentStatus.PENDING.value:
            # The customer retried checkout: reuse the open intent
            return {"gateway_order_id": order.gateway_order_id, "amount": order.total, "currency": order.currency}

        try:
            intent = get_gateway().create_payment_intent(order.total, order.currency, str(order.id))
        except Exception as exc:
            logger.error("payment_intent_failed", order_id=str(order.id), error=str(exc))
            raise ExternalServiceError("payment_gateway", "Payment gateway is unavailable") from exc

        if not intent.success:
            logger.warning("payment_intent_rejected", order_id=str(order.id), reason=intent.failure_reason)
            raise ExternalServiceError("payment_gateway", intent.failure_reason or "Payment intent was rejected")

        order.record_payment_intent(intent.gateway_order_id)
        current_domain.repository_for(Order).add(order)
        return {"gateway_order_id": intent.gateway_order_id, "amount": order.total, "currency": order.currency}

    @handle(ConfirmOrderPayment)
    def confirm_payment(self, command):
        order = load_order(command.order_id)

        if not get_gateway().verify_payment_signature(
            command.gateway_order_id, command.gateway_payment_id, command.signature
        ):
            logger.warning("payment_signature_invalid", order_id=str(order.id))
            raise PaymentVerificationError()

        if (
            order.payment_status == PaymentStatus.PAID.value
            and order.gateway_order_id == command.gateway_order_id
            and order.gateway_payment_id == command.gateway_payment_id
        ):
            return order.status

        self._reject_payment_used_elsewhere(order, command.gateway_payment_id)

        order.record_payment(command.gateway_order_id, command.gateway_payment_id, SYSTEM_ACTOR)
        if order.status == OrderStatus.PENDING.value:
            self._confirm_paid_order(order)

        current_domain.repository_for(Order).add(order)
        logger.info("order_payment_confirmed", order_id=str(order.id), status=order.status)
        return order.status

    def _reject_payment_used_elsewhere(self, order, gateway_payment_id):
        dao = current_domain.repository_for(Order)._dao
        owners = dao.query.filter(gateway_payment_id=gateway_payment_id).all().items
        if any(str(other.id) != str(order.id) for other in owners):
            logger.warning(
                "payment_already_recorded",
                order_id=str(order.id),
                gateway_payment_id=gateway_payment_id,
            )
            raise ValidationError({"gateway_payment_id": ["Payment is already recorded on another order"]})

    def _confirm_paid_order(self, order):
        try:
            transition(order, OrderStatus.CONFIRMED, SYSTEM_ACTOR, note="Payment verified")
        except InsufficientStockError as exc:
            logger.warning(
                "paid_order_out_of_stock",
                order_id=str(order.id),
                book_id=exc.book_id,
                requested=exc.requested,
                available=exc.available,
            )
            transition(
                order,
                OrderStatus.CANCELLED,
                SYSTEM_ACTOR,
                note=f"Cancelled after payment: {exc.book_id} is out of stock",
            )
