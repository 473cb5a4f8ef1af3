"""Bookorders API package."""

from bookorders.api.errors import register_error_handlers
from bookorders.api.routes import admin_router, order_router, seller_router, shipping_router

__all__ = ["order_router", "seller_router", "admin_router", "shipping_router", "register_error_handlers"]
