"""FastAPI routes for orders, settlements and admin operations.

Commands that touch an existing order go through ``process_for_order`` so
requests for the same order are applied one at a time.
"""

import json

from fastapi import APIRouter, Query
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from bookorders.api.schemas import (
    AdvanceStatusRequest,
    CancelOrderRequest,
    CorrectShippingRequest,
    MarkSellerPaidRequest,
    OrderIdResponse,
    OrderStatusName,
    OrderStatusResponse,
    OverrideCommissionRequest,
    PaymentIntentResponse,
    PlaceOrderRequest,
    PlatformCommissionRequest,
    PlatformCommissionResponse,
    RefundRequest,
    ShippingQuoteRequest,
    ShippingQuoteResponse,
    StatusResponse,
    VerifyPaymentRequest,
)
from bookorders.config import get_settings, set_settings
from bookorders.order.cancellation import CancelOrder, ProcessRefund
from bookorders.order.creation import PlaceOrder
from bookorders.order.locking import process_for_order
from bookorders.order.payment import ConfirmOrderPayment, InitiateOrderPayment
from bookorders.order.queries import (
    get_order_detail,
    list_customer_orders,
    list_orders,
    list_seller_settlements,
)
from bookorders.order.settlement import CorrectShippingCost, MarkSellerPaid, OverrideCommission
from bookorders.order.status import AdvanceOrderStatus
from bookorders.shipping import get_shipping_calculator

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    command = PlaceOrder(
        customer_id=body.customer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        payment_method=body.payment_method,
        coupon_code=body.coupon_code,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=order_id, status=get_order_detail(order_id)["status"])


@order_router.get("")
async def customer_orders(
    customer_id: str = Query(min_length=1),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> dict:
    return list_customer_orders(customer_id, page=page, page_size=limit)


@order_router.get("/{order_id}")
async def order_detail(order_id: str) -> dict:
    return get_order_detail(order_id)


@order_router.patch("/{order_id}/status", response_model=OrderStatusResponse)
async def advance_status(order_id: str, body: AdvanceStatusRequest) -> OrderStatusResponse:
    command = AdvanceOrderStatus(
        order_id=order_id,
        status=body.status,
        changed_by=body.changed_by,
        note=body.note,
        tracking_number=body.tracking_number,
        estimated_delivery=body.estimated_delivery,
    )
    status = process_for_order(order_id, command)
    return OrderStatusResponse(order_id=order_id, status=status)


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(order_id=order_id, reason=body.reason, cancelled_by=body.cancelled_by)
    process_for_order(order_id, command)
    return StatusResponse()


@order_router.post("/{order_id}/refund", response_model=StatusResponse)
async def refund_order(order_id: str, body: RefundRequest) -> StatusResponse:
    command = ProcessRefund(
        order_id=order_id,
        amount=body.amount,
        reason=body.reason,
        processed_by=body.processed_by,
    )
    process_for_order(order_id, command)
    return StatusResponse()


@order_router.patch("/{order_id}/shipping", response_model=StatusResponse)
async def correct_shipping(order_id: str, body: CorrectShippingRequest) -> StatusResponse:
    command = CorrectShippingCost(
        order_id=order_id,
        shipping_cost=body.shipping_cost,
        corrected_by=body.corrected_by,
    )
    process_for_order(order_id, command)
    return StatusResponse()


@order_router.patch("/{order_id}/sellers/{seller_id}/commission", response_model=StatusResponse)
async def override_commission(order_id: str, seller_id: str, body: OverrideCommissionRequest) -> StatusResponse:
    command = OverrideCommission(
        order_id=order_id,
        seller_id=seller_id,
        commission_rate=body.commission_rate,
        overridden_by=body.overridden_by,
    )
    process_for_order(order_id, command)
    return StatusResponse()


@order_router.post("/{order_id}/sellers/{seller_id}/mark-paid", response_model=StatusResponse)
async def mark_seller_paid(order_id: str, seller_id: str, body: MarkSellerPaidRequest) -> StatusResponse:
    command = MarkSellerPaid(order_id=order_id, seller_id=seller_id, paid_by=body.paid_by, notes=body.notes)
    process_for_order(order_id, command)
    return StatusResponse()


@order_router.post("/{order_id}/payment", response_model=PaymentIntentResponse)
async def initiate_payment(order_id: str) -> PaymentIntentResponse:
    intent = process_for_order(order_id, InitiateOrderPayment(order_id=order_id))
    return PaymentIntentResponse(order_id=order_id, **intent)


@order_router.post("/{order_id}/payment/verify", response_model=OrderStatusResponse)
async def verify_payment(order_id: str, body: VerifyPaymentRequest) -> OrderStatusResponse:
    command = ConfirmOrderPayment(
        order_id=order_id,
        gateway_order_id=body.gateway_order_id,
        gateway_payment_id=body.gateway_payment_id,
        signature=body.signature,
    )
    status = process_for_order(order_id, command)
    return OrderStatusResponse(order_id=order_id, status=status)


# ---------------------------------------------------------------------------
# Seller Router
# ---------------------------------------------------------------------------
seller_router = APIRouter(prefix="/sellers", tags=["sellers"])


@seller_router.get("/{seller_id}/settlements")
async def seller_settlements(
    seller_id: str,
    status: str | None = Query(default=None, pattern="^(due|paid)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> dict:
    return list_seller_settlements(seller_id, payment_status=status, page=page, page_size=limit)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/orders")
async def admin_orders(
    status: OrderStatusName | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> dict:
    return list_orders(status=status, page=page, page_size=limit)


@admin_router.get("/settings/commission", response_model=PlatformCommissionResponse)
async def get_platform_commission() -> PlatformCommissionResponse:
    return PlatformCommissionResponse(commission_rate=get_settings().commission_rate)


@admin_router.put("/settings/commission", response_model=PlatformCommissionResponse)
async def update_platform_commission(body: PlatformCommissionRequest) -> PlatformCommissionResponse:
    # Applies to settlements computed from now on; existing ones keep their frozen rate
    set_settings(get_settings().model_copy(update={"commission_rate": body.commission_rate}))
    return PlatformCommissionResponse(commission_rate=get_settings().commission_rate)


# ---------------------------------------------------------------------------
# Shipping Router
# ---------------------------------------------------------------------------
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])


@shipping_router.post("/quote", response_model=ShippingQuoteResponse)
async def shipping_quote(body: ShippingQuoteRequest) -> ShippingQuoteResponse:
    calculator = get_shipping_calculator()
    check = calculator.validate_postal_code(body.postal_code)
    if not check.is_valid:
        raise ValidationError({"postal_code": [check.message]})
    quote = calculator.quote(body.postal_code, body.subtotal)
    return ShippingQuoteResponse(
        postal_code=quote.postal_code,
        zone=quote.zone,
        shipping_cost=quote.cost,
        free_shipping=quote.free_shipping,
        estimated_days=quote.estimated_days,
    )
