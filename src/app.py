"""Bookorders FastAPI application.

Web server that processes order commands synchronously via HTTP. Every
request runs inside the bookorders domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the Protean config overlay; BOOKORDERS_* variables
# configure commission, shipping and the stock database.
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bookorders.config import get_settings
from bookorders.domain import bookorders
from bookorders.utils.db import configure_stock_backend
from bookorders.utils.logging import add_context, clear_context, configure_logging

configure_logging()
bookorders.init()
configure_stock_backend(get_settings())

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Bookstall Orders API",
    description="Order lifecycle and multi-seller settlement for the bookstore",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the bookorders domain context and bind request log context."""
    add_context(
        request_id=request.headers.get("x-request-id") or uuid.uuid4().hex,
        method=request.method,
        path=request.url.path,
    )
    try:
        with bookorders.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from bookorders.api import (  # noqa: E402
    admin_router,
    order_router,
    register_error_handlers,
    seller_router,
    shipping_router,
)

app.include_router(order_router)
app.include_router(seller_router)
app.include_router(admin_router)
app.include_router(shipping_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": bookorders.name,
            "commission_rate": get_settings().commission_rate,
        }
    )
