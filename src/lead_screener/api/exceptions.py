"""Custom exception handlers."""
import re

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.errors import LeadScreenerError, PipelineError
from ..core.logging import logger


def error_type(exc: LeadScreenerError) -> str:
    """Machine-readable type for an error response, e.g. ``task_not_found``."""
    if isinstance(exc, PipelineError):
        return exc.error_kind.value
    name = type(exc).__name__
    if name.endswith("Error") and name != "Error":
        name = name[:-len("Error")]
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def error_response(status_code: int, message: str, type_: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "type": type_,
            "details": details or {}
        }
    )


async def lead_screener_exception_handler(request: Request, exc: LeadScreenerError):
    """Handle application exceptions."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, error_type(exc), exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with proper logging."""
    logger.warning(
        f"HTTP error: {exc.status_code} - {exc.detail}",
        extra={"path": str(request.url), "method": request.method}
    )
    return error_response(exc.status_code, str(exc.detail), "http_error")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400 with the validation errors."""
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    logger.warning(f"Invalid request on {request.url.path}: {errors}")
    return error_response(400, "Invalid request", "validation_error", {"errors": errors})


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return error_response(500, "Internal server error", "internal_error")


# Exception handler registry
exception_handlers = {
    LeadScreenerError: lead_screener_exception_handler,
    StarletteHTTPException: http_exception_handler,
    RequestValidationError: validation_exception_handler,
    Exception: global_exception_handler,
}
