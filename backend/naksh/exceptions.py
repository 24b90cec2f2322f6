"""
Naksh Backend — Error Taxonomy
================================

What:  The closed set of API error kinds and the single exception type that
       carries them through the request pipeline.
How:   `ErrorKind` fixes the HTTP status and machine code of every kind.
       `APIError` is a tagged variant (kind + message + details) rather than a
       class per kind; factory functions below build each kind.
Who:   Raised by services, validation utilities, dependencies and the error
       transformer; rendered by the terminal handler in middleware/errors.py.

Taxonomy:
    VALIDATION        → 400 VALIDATION_ERROR
    AUTHENTICATION    → 401 AUTHENTICATION_ERROR
    AUTHORIZATION     → 403 AUTHORIZATION_ERROR
    NOT_FOUND         → 404 NOT_FOUND_ERROR
    CONFLICT          → 409 CONFLICT_ERROR
    GONE              → 410 GONE_ERROR
    RATE_LIMITED      → 429 RATE_LIMIT_ERROR
    DATABASE          → 500 DATABASE_ERROR
    EXTERNAL_SERVICE  → 502 EXTERNAL_SERVICE_ERROR
    INTERNAL          → 500 INTERNAL_ERROR   (catch-all, non-operational)

Operational vs non-operational:
    Every kind is operational (expected, safe to show to the caller) except
    INTERNAL built from an unrecognized exception. Its message is always the
    generic one; the original exception is kept on `original` for logging.
"""

from enum import Enum
from typing import Any, Dict, Optional


GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class ErrorKind(Enum):
    """Error kinds with their fixed (status, code) pair."""

    VALIDATION = (400, "VALIDATION_ERROR")
    AUTHENTICATION = (401, "AUTHENTICATION_ERROR")
    AUTHORIZATION = (403, "AUTHORIZATION_ERROR")
    NOT_FOUND = (404, "NOT_FOUND_ERROR")
    CONFLICT = (409, "CONFLICT_ERROR")
    GONE = (410, "GONE_ERROR")
    RATE_LIMITED = (429, "RATE_LIMIT_ERROR")
    DATABASE = (500, "DATABASE_ERROR")
    EXTERNAL_SERVICE = (502, "EXTERNAL_SERVICE_ERROR")
    INTERNAL = (500, "INTERNAL_ERROR")

    @property
    def status_code(self) -> int:
        return self.value[0]

    @property
    def code(self) -> str:
        return self.value[1]


def kind_for_status(status: Optional[int], default: ErrorKind = ErrorKind.INTERNAL) -> ErrorKind:
    """
    Find the kind that owns an HTTP status.

    DATABASE and INTERNAL share 500; INTERNAL is never returned for 500
    here because callers use this for provider statuses, where a 500 means
    the upstream failed. Unknown 4xx statuses fall back to VALIDATION.
    """
    if status is None:
        return default
    for kind in ErrorKind:
        if kind.status_code == status and kind not in (ErrorKind.DATABASE, ErrorKind.INTERNAL):
            return kind
    if 400 <= status < 500:
        return ErrorKind.VALIDATION
    return default


class APIError(Exception):
    """
    Normalized error carried from the point of failure to the terminal handler.

    Attributes:
        kind:            ErrorKind (fixes the default status and code)
        message:         Human-readable description (shown to the caller
                         when the error is operational)
        details:         Optional structured payload (field names, constraint...)
        is_operational:  False only for unexpected failures
        status_code:     Defaults to the kind's status; framework errors
                         (e.g. 405 from routing) keep their own status
        code:            Defaults to the kind's code; ROUTE_NOT_FOUND overrides it
        original:        The raw exception this error was classified from
        retry_after:     Seconds, for RATE_LIMITED errors
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        details: Any = None,
        is_operational: bool = True,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        original: Optional[BaseException] = None,
        retry_after: Optional[int] = None,
    ):
        self.kind = kind
        self.message = message or GENERIC_ERROR_MESSAGE
        self.details = details
        self.is_operational = is_operational
        self.status_code = status_code or kind.status_code
        self.code = code or kind.code
        self.original = original
        self.retry_after = retry_after
        self.debug_repr: Optional[str] = None
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """The wire `error` object of a failure envelope."""
        body: Dict[str, Any] = {
            "message": self.message,
            "code": self.code,
            "statusCode": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return f"<APIError(kind={self.kind.name}, code='{self.code}', message='{self.message}')>"


# ══════════════════════════════════════════════════════════════════════════
# Factory functions, one per kind
# ══════════════════════════════════════════════════════════════════════════


def validation_error(message: str = "Validation failed", details: Any = None) -> APIError:
    return APIError(ErrorKind.VALIDATION, message, details)


def authentication_error(message: str = "Authentication required") -> APIError:
    return APIError(ErrorKind.AUTHENTICATION, message)


def authorization_error(message: str = "Access denied") -> APIError:
    return APIError(ErrorKind.AUTHORIZATION, message)


def not_found(resource: str = "Resource") -> APIError:
    """NotFound with the conventional "<Resource> not found" message."""
    return APIError(ErrorKind.NOT_FOUND, f"{resource} not found")


def route_not_found(path: str) -> APIError:
    return APIError(ErrorKind.NOT_FOUND, f"Route {path} not found", code="ROUTE_NOT_FOUND")


def conflict(message: str, details: Any = None) -> APIError:
    return APIError(ErrorKind.CONFLICT, message, details)


def gone(message: str) -> APIError:
    return APIError(ErrorKind.GONE, message)


def rate_limited(message: str = "Too many requests", retry_after: Optional[int] = None) -> APIError:
    details = {"retryAfter": retry_after} if retry_after is not None else None
    return APIError(ErrorKind.RATE_LIMITED, message, details, retry_after=retry_after)


def database_error(
    message: str = "Database operation failed",
    original: Optional[BaseException] = None,
) -> APIError:
    return APIError(ErrorKind.DATABASE, message, original=original)


def external_service_error(service: str, message: str = "External service unavailable") -> APIError:
    return APIError(
        ErrorKind.EXTERNAL_SERVICE,
        f"{service}: {message}",
        details={"service": service},
    )


def internal_error(original: Any = None) -> APIError:
    """
    Catch-all for anything the transformer does not recognize.

    The caller-facing message is always generic. `original` is only kept
    when it is an exception; other values are summarized in `details`
    which the renderer discloses in development only.
    """
    raw = original if isinstance(original, BaseException) else None
    error = APIError(
        ErrorKind.INTERNAL,
        GENERIC_ERROR_MESSAGE,
        is_operational=False,
        original=raw,
    )
    if raw is None and original is not None:
        error.debug_repr = _safe_repr(original)
    return error


def _safe_repr(value: Any) -> str:
    try:
        return repr(value)[:500]
    except Exception:
        return f"<unrepresentable {type(value).__name__}>"


# ══════════════════════════════════════════════════════════════════════════
# Provider errors raised by the identity provider and media host clients
# ══════════════════════════════════════════════════════════════════════════


class IdentityProviderError(Exception):
    """Failure reported by the identity provider, with an HTTP-like status."""

    def __init__(self, message: str = "Identity provider error", status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class MediaHostError(Exception):
    """Failure reported by the media host, with an HTTP-like code."""

    def __init__(self, message: str = "Media host error", http_code: Optional[int] = None):
        self.message = message
        self.http_code = http_code
        super().__init__(message)
