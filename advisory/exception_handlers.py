"""
Exception handlers

Register these on a FastAPI app instance via `register_exception_handlers(app)`.
Every error body uses the same `{success: false, error: <reason>}` shape as
the phone endpoints.
"""
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", []) if part != "body")
        message = errors[0].get("msg", "Invalid request data")
        error = f"{field}: {message}" if field else message
    else:
        error = "Invalid request data"

    return JSONResponse(status_code=400, content={"success": False, "error": error})


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


def register_exception_handlers(app):
    """Register all exception handlers on the given FastAPI app."""
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
