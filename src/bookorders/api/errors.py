"""Maps the order error taxonomy to HTTP responses.

Every error body has the same shape, ``{"error", "message", "details"}``,
and never includes a traceback. Protean's own handlers are registered first
and cover any framework exception not mapped here.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ProteanException, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from bookorders.errors import (
    AlreadyPaidError,
    ExternalServiceError,
    InsufficientStockError,
    InvalidTransitionError,
)

logger = structlog.get_logger(__name__)

# Checked in order; the first matching class wins
ERROR_STATUS_CODES = [
    (InsufficientStockError, 409),
    (InvalidTransitionError, 409),
    (AlreadyPaidError, 409),
    (ObjectNotFoundError, 404),
    (ValidationError, 400),
    (ExternalServiceError, 502),
]


def status_code_for(exc: Exception) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 500


def _first_message(details) -> str:
    if isinstance(details, dict):
        for messages in details.values():
            if isinstance(messages, list) and messages:
                return str(messages[0])
            if messages:
                return str(messages)
    if isinstance(details, list) and details:
        return str(details[0])
    return str(details) if details else "Request failed"


def error_body(exc: Exception) -> dict:
    details = getattr(exc, "messages", None) or str(exc)
    default_code = "not_found" if isinstance(exc, ObjectNotFoundError) else "validation_error"
    return {
        "error": getattr(exc, "code", default_code),
        "message": _first_message(details),
        "details": details if isinstance(details, dict) else {},
    }


async def domain_error_handler(request: Request, exc: ProteanException) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.info(
        "request_failed",
        path=request.url.path,
        status_code=status_code,
        error=getattr(exc, "code", type(exc).__name__),
    )
    return JSONResponse(status_code=status_code, content=error_body(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
        errors.setdefault(field, []).append(error["msg"])
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "message": _first_message(errors), "details": errors},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's handlers, then the order-specific ones on top."""
    register_exception_handlers(app)
    for error_class in (ValidationError, ObjectNotFoundError, ExternalServiceError):
        app.add_exception_handler(error_class, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
