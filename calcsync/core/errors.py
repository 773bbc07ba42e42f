"""Error Hierarchy: typed, categorized exceptions for every calcsync failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are client-fixable; infrastructure errors (500-level) are not
    - Field-addressable errors carry fields: {field_name: [messages]}
    - to_response() produces the REST envelope; from_response() reverses it on the client
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with CalcSyncError base: FastAPI global handler catches all
      (ADR: uniform error shape for server and client library)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - DivisionByZeroError is a domain rule violation but renders like validation,
      addressed to the "right" field, so forms can show it next to the input
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    DATABASE = "database"
    NETWORK = "network"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    record_id: str | None = None
    principal_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class CalcSyncError(Exception):
    """Base exception for all calcsync errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        fields: dict[str, list[str]] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.fields = fields or {}

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        body = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
        }
        if self.fields:
            body["fields"] = self.fields
        if self.context.record_id:
            body["context"] = {"record_id": self.context.record_id}
        return {"error": body}


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationError(CalcSyncError):
    """Request data failed validation; fields maps field name -> messages."""
    def __init__(
        self,
        fields: dict[str, list[str]],
        message: str = "One or more validation errors occurred.",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400, fields,
        )


class DivisionByZeroError(CalcSyncError):
    """Divide requested with a zero right operand."""
    def __init__(self, context: ErrorContext | None = None):
        message = "Division by zero is not allowed."
        super().__init__(
            message, "DIVISION_BY_ZERO", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400, {"right": [message]},
        )


class ResultOutOfRangeError(CalcSyncError):
    """Operands are finite but the result overflows the float range."""
    def __init__(self, context: ErrorContext | None = None):
        message = "Result is outside the representable number range."
        super().__init__(
            message, "RESULT_OUT_OF_RANGE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400, {"result": [message]},
        )


class UnsupportedOperationError(CalcSyncError):
    """Operation outside the closed Add/Subtract/Multiply/Divide set."""
    def __init__(self, value: object, context: ErrorContext | None = None):
        message = f"Unsupported operation: {value!r}."
        super().__init__(
            message, "UNSUPPORTED_OPERATION", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400, {"operation": [message]},
        )
        self.value = value


class RecordNotFoundError(CalcSyncError):
    """Record is absent or already deactivated."""
    def __init__(self, record_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.record_id = str(record_id)
        super().__init__(
            f"Calculation '{record_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )


class ForbiddenError(CalcSyncError):
    """Principal may not act on this resource (ownership or role mismatch)."""
    def __init__(
        self, message: str = "You do not own this calculation",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class UnauthenticatedError(CalcSyncError):
    """Missing, expired or invalid credentials."""
    def __init__(
        self, message: str = "Could not validate credentials",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ConflictError(CalcSyncError):
    """Unique constraint on a user-chosen value (e.g. username) violated."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class InvalidTransitionError(CalcSyncError):
    """Client view state machine asked for a transition it does not define."""
    def __init__(self, status: str, event: str, context: ErrorContext | None = None):
        super().__init__(
            f"No transition from '{status}' on '{event}'",
            "INVALID_TRANSITION", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(CalcSyncError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class TransientNetworkError(CalcSyncError):
    """Client-side: request did not complete (transport failure or 5xx). Retryable."""
    def __init__(
        self, message: str, status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "TRANSIENT_NETWORK_ERROR", ErrorCategory.NETWORK,
            ErrorSeverity.WARNING, context, status_code or 503,
        )
        self.status_code = status_code


# ─── Client-side envelope parsing ───────────────────────────────

_BY_STATUS = {
    401: UnauthenticatedError,
    403: ForbiddenError,
    409: ConflictError,
}


def from_response(status_code: int, body: Any) -> CalcSyncError:
    """Rebuild a typed error from an HTTP status and decoded JSON body.

    Accepts the calcsync envelope, a bare {"errors": {...}} problem-details
    body, or anything else (falls back to status-based mapping).
    """
    envelope = body.get("error") if isinstance(body, dict) else None
    if not isinstance(envelope, dict):
        envelope = {}
    message = envelope.get("message") or _fallback_message(body, status_code)
    code = envelope.get("code")
    fields = _coerce_fields(envelope.get("fields"))
    if not fields and isinstance(body, dict):
        fields = _coerce_fields(body.get("errors"))

    if code == "DIVISION_BY_ZERO":
        return DivisionByZeroError()
    if code == "RESULT_OUT_OF_RANGE":
        return ResultOutOfRangeError()
    if code == "UNSUPPORTED_OPERATION":
        err = UnsupportedOperationError(None)
        err.message, err.fields = message, fields or err.fields
        return err
    if status_code == 404:
        record_id = (envelope.get("context") or {}).get("record_id") or "unknown"
        return RecordNotFoundError(record_id)
    if status_code in _BY_STATUS:
        return _BY_STATUS[status_code](message)
    if status_code >= 500:
        return TransientNetworkError(message, status_code=status_code)
    if status_code in (400, 422):
        return ValidationError(fields or {"_generic": [message]}, message)
    return CalcSyncError(
        message, code or "HTTP_ERROR", ErrorCategory.INTERNAL,
        http_status=status_code,
    )


def field_messages(error: Exception) -> dict[str, str]:
    """Flatten an error into one message per field, for form rendering.

    Non-field failures land under the "_generic" key.
    """
    fields = getattr(error, "fields", None)
    if fields:
        return {
            name.lower(): (msgs[0] if isinstance(msgs, list) and msgs else str(msgs))
            for name, msgs in fields.items()
        }
    message = getattr(error, "message", None) or str(error)
    return {"_generic": message or "An unknown error occurred."}


def _coerce_fields(raw: Any) -> dict[str, list[str]]:
    if not isinstance(raw, dict):
        return {}
    return {
        str(k): (list(v) if isinstance(v, list) else [str(v)])
        for k, v in raw.items()
    }


def _fallback_message(body: Any, status_code: int) -> str:
    if isinstance(body, dict):
        for key in ("detail", "title", "message"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"Request failed with status {status_code}"
