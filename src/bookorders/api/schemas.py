"""Pydantic request/response schemas for the Bookorders API.

These are external contracts, kept separate from the Protean commands.
Request models are strict: unknown fields are rejected and numbers must
arrive as numbers, so malformed payloads fail before any command runs.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

_STRICT = {"extra": "forbid", "strict": True}

OrderStatusName = Literal["pending", "confirmed", "shipped", "delivered", "cancelled", "returned"]


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(pattern=r"^[0-9]{6}$")
    country: str = Field(default="India", max_length=100)
    landmark: str | None = Field(default=None, max_length=255)

    model_config = _STRICT


class OrderLineSchema(BaseModel):
    book_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=1, le=100)

    model_config = _STRICT


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str = Field(min_length=1)
    items: list[OrderLineSchema] = Field(min_length=1)
    shipping_address: AddressSchema
    payment_method: Literal["cash_on_delivery", "razorpay"]
    coupon_code: str | None = Field(default=None, max_length=50)

    model_config = {
        **_STRICT,
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [{"book_id": "book-001", "quantity": 2}],
                    "shipping_address": {
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "postal_code": "560001",
                        "country": "India",
                    },
                    "payment_method": "cash_on_delivery",
                    "coupon_code": None,
                }
            ]
        },
    }


class AdvanceStatusRequest(BaseModel):
    status: OrderStatusName
    changed_by: str = Field(min_length=1, max_length=100)
    note: str | None = Field(default=None, max_length=500)
    tracking_number: str | None = Field(default=None, max_length=255)
    estimated_delivery: datetime | None = None

    # Datetimes arrive as ISO strings in JSON, so this model is not strict
    model_config = {"extra": "forbid"}


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)
    cancelled_by: str = Field(min_length=1, max_length=100)

    model_config = _STRICT


class RefundRequest(BaseModel):
    amount: float
    reason: str | None = Field(default=None, max_length=500)
    processed_by: str = Field(min_length=1, max_length=100)

    model_config = _STRICT


class CorrectShippingRequest(BaseModel):
    shipping_cost: float = Field(ge=0)
    corrected_by: str = Field(min_length=1, max_length=100)

    model_config = _STRICT


class OverrideCommissionRequest(BaseModel):
    commission_rate: float = Field(ge=0, le=100)
    overridden_by: str = Field(min_length=1, max_length=100)

    model_config = _STRICT


class MarkSellerPaidRequest(BaseModel):
    paid_by: str = Field(min_length=1, max_length=100)
    notes: str | None = None

    model_config = _STRICT


class VerifyPaymentRequest(BaseModel):
    gateway_order_id: str = Field(min_length=1, max_length=255)
    gateway_payment_id: str = Field(min_length=1, max_length=255)
    signature: str = Field(min_length=1, max_length=255)

    model_config = _STRICT


class ShippingQuoteRequest(BaseModel):
    postal_code: str
    subtotal: float = Field(ge=0, default=0.0)

    model_config = _STRICT


class PlatformCommissionRequest(BaseModel):
    commission_rate: float = Field(ge=0, le=100)

    model_config = _STRICT


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str
    status: str


class StatusResponse(BaseModel):
    status: str = "ok"


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str


class PaymentIntentResponse(BaseModel):
    order_id: str
    gateway_order_id: str
    amount: float
    currency: str


class ShippingQuoteResponse(BaseModel):
    postal_code: str
    zone: str
    shipping_cost: float
    free_shipping: bool
    estimated_days: int


class PlatformCommissionResponse(BaseModel):
    commission_rate: float
