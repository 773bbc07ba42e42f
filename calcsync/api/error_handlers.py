"""Error Handlers: global exception handlers for the calcsync API.

Invariants:
    - CalcSyncError -> structured JSON with code, message, severity (+ fields when present)
    - RequestValidationError -> same envelope with a field-keyed map {field: [messages]}
    - Exception (catch-all) -> never leaks internal details
    - 401 responses carry WWW-Authenticate: Bearer

Design Decisions:
    - Three-layer handler: domain (CalcSyncError), validation (Pydantic), catch-all (Exception)
    - Field name is the last non-integer element of the Pydantic loc, so
      ("body", "left") and ("query", "pageSize") both map to the client's own field name
    - Extracted from main.py to keep the app module small
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from calcsync.core.errors import CalcSyncError, ErrorSeverity, UnauthenticatedError

logger = logging.getLogger(__name__)

_LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:
    """Register calcsync domain/infrastructure error handler."""

    @app.exception_handler(CalcSyncError)
    async def calcsync_error_handler(request: Request, exc: CalcSyncError):
        """Handle all calcsync domain/infrastructure errors."""
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"CalcSyncError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        headers = (
            {"WWW-Authenticate": "Bearer"}
            if isinstance(exc, UnauthenticatedError) else None
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
            headers=headers,
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    """Register Pydantic validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=build_validation_error_response(exc.errors()),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all: never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def field_name(loc: tuple | list) -> str:
    """Client-facing field name for a Pydantic error location."""
    parts = [str(p) for p in loc if not isinstance(p, int)]
    parts = [p for p in parts if p not in _LOCATION_ROOTS]
    return parts[-1] if parts else "_generic"


def build_validation_error_response(errors: list[dict]) -> dict:
    """Build structured validation error response with a field-keyed map."""
    fields: dict[str, list[str]] = {}
    for e in errors:
        message = str(e.get("msg", "Invalid value"))
        # Pydantic prefixes messages raised from validators
        message = message.removeprefix("Value error, ")
        fields.setdefault(field_name(e.get("loc", ())), []).append(message)
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "One or more validation errors occurred.",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "fields": fields,
        },
    }
