"""Runtime settings for order placement and settlement.

Settings are read once from the environment and handed explicitly to the
collaborators that need them (the settlement calculator receives the
platform commission rate at call time and freezes it into each settlement).

Environment variables:
    BOOKORDERS_COMMISSION_RATE            Platform commission in percent (default 2.5)
    BOOKORDERS_ZERO_SUBTOTAL_SHIPPING     "equal" or "none" (default "equal")
    BOOKORDERS_CURRENCY                   ISO currency code (default "INR")
    BOOKORDERS_ADMIN_RECIPIENTS           Comma separated admin user ids (default "admin")
    BOOKORDERS_FREE_SHIPPING_THRESHOLD    Discounted subtotal for free shipping (default 2000)
    BOOKORDERS_GATEWAY_SECRET             Payment gateway signing secret
    BOOKORDERS_STOCK_DATABASE_URI         SQLAlchemy URI for books and stock (in-memory when unset)
"""

import os
from enum import Enum

from pydantic import BaseModel, Field


class ShippingSplit(Enum):
    """How shipping is shared between sellers when the subtotal is zero."""

    EQUAL = "equal"
    NONE = "none"


class OrderingSettings(BaseModel):
    commission_rate: float = Field(default=2.5, ge=0, le=100)
    zero_subtotal_shipping: ShippingSplit = ShippingSplit.EQUAL
    currency: str = Field(default="INR", min_length=3, max_length=3)
    admin_recipients: list[str] = Field(default_factory=lambda: ["admin"])
    free_shipping_threshold: float = Field(default=2000.0, ge=0)
    gateway_secret: str = "test-gateway-secret"
    stock_database_uri: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls) -> "OrderingSettings":
        values: dict = {}
        if rate := os.getenv("BOOKORDERS_COMMISSION_RATE"):
            values["commission_rate"] = float(rate)
        if split := os.getenv("BOOKORDERS_ZERO_SUBTOTAL_SHIPPING"):
            values["zero_subtotal_shipping"] = ShippingSplit(split.lower())
        if currency := os.getenv("BOOKORDERS_CURRENCY"):
            values["currency"] = currency.upper()
        if admins := os.getenv("BOOKORDERS_ADMIN_RECIPIENTS"):
            values["admin_recipients"] = [a.strip() for a in admins.split(",") if a.strip()]
        if threshold := os.getenv("BOOKORDERS_FREE_SHIPPING_THRESHOLD"):
            values["free_shipping_threshold"] = float(threshold)
        if secret := os.getenv("BOOKORDERS_GATEWAY_SECRET"):
            values["gateway_secret"] = secret
        if stock_uri := os.getenv("BOOKORDERS_STOCK_DATABASE_URI"):
            values["stock_database_uri"] = stock_uri
        return cls(**values)


_current_settings: OrderingSettings | None = None


def get_settings() -> OrderingSettings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = OrderingSettings.from_env()
    return _current_settings


def set_settings(settings: OrderingSettings) -> None:
    """Replace the active settings (admin commission updates, tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Forget the active settings so the next read reloads the environment."""
    global _current_settings
    _current_settings = None
