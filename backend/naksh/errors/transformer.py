"""
Naksh Backend — Error Transformer
===================================

What:  `classify(raw)` maps any failure into an `APIError`.
How:   An ordered table of (name, predicate, mapper) rules tested top to
       bottom; the first matching rule builds the result.
Who:   Called by the async boundary (errors/boundary.py) and by the
       terminal handler (middleware/errors.py) for anything that reaches it
       unclassified.

Rule order:
    1. already an APIError                 → returned unchanged
    2. storage unique violation            → CONFLICT "<field> already exists"
    3. storage record missing (update/del) → NOT_FOUND "Record not found"
    4. storage foreign key / invalid id    → VALIDATION
    5. storage range / schema / pool       → DATABASE
    6. identity provider error             → AUTHENTICATION / AUTHORIZATION / by status
    7. media host error                    → VALIDATION / EXTERNAL_SERVICE
    7a. framework HTTPException            → kind owning its status
    8. validation-library error            → VALIDATION with per-field details
    9. anything else                       → INTERNAL (non-operational)

Guarantees:
    - Total: any input (None, plain objects, exceptions) yields an APIError.
    - Pure: the input is never mutated.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from fastapi.exceptions import RequestValidationError
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from naksh.exceptions import (
    APIError,
    ErrorKind,
    IdentityProviderError,
    MediaHostError,
    authentication_error,
    authorization_error,
    conflict,
    database_error,
    external_service_error,
    internal_error,
    kind_for_status,
    not_found,
    validation_error,
)

logger = logging.getLogger(__name__)

Rule = Tuple[str, Callable[[Any], bool], Callable[[Any], APIError]]

MEDIA_HOST_NAME = "Cloudinary"

# SQLSTATE codes (PostgreSQL) and the SQLite message fragments they map to
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INVALID_TEXT_REPRESENTATION = "22P02"
NUMERIC_VALUE_OUT_OF_RANGE = "22003"
UNDEFINED_TABLE = "42P01"
UNDEFINED_COLUMN = "42703"

_PG_KEY_DETAIL = re.compile(r"Key \((?P<field>[^)]+)\)=")
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<columns>.+)")

_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


# ══════════════════════════════════════════════════════════════════════════
# Storage helpers
# ══════════════════════════════════════════════════════════════════════════


def _driver_errors(error: Any) -> List[Any]:
    """
    The DBAPI error wrapped by SQLAlchemy and the native driver error behind it.

    asyncpg errors reach us as SQLAlchemy's adapted DBAPI exception whose
    __cause__ is the asyncpg exception carrying sqlstate/detail/constraint.
    """
    orig = getattr(error, "orig", None)
    candidates = [orig, getattr(orig, "__cause__", None)]
    return [c for c in candidates if c is not None]


def _sqlstate(error: Any) -> Optional[str]:
    for candidate in _driver_errors(error):
        for attr in ("sqlstate", "pgcode"):
            value = getattr(candidate, attr, None)
            if isinstance(value, str) and value:
                return value
    return None


def _driver_message(error: Any) -> str:
    return " ".join(str(c) for c in _driver_errors(error))


def _is_unique_violation(error: Any) -> bool:
    if not isinstance(error, sa_exc.IntegrityError):
        return False
    return _sqlstate(error) == UNIQUE_VIOLATION or "UNIQUE constraint failed" in _driver_message(error)


def _is_foreign_key_violation(error: Any) -> bool:
    if not isinstance(error, sa_exc.IntegrityError):
        return False
    return (
        _sqlstate(error) == FOREIGN_KEY_VIOLATION
        or "FOREIGN KEY constraint failed" in _driver_message(error)
    )


def _is_invalid_reference(error: Any) -> bool:
    if _is_foreign_key_violation(error):
        return True
    return isinstance(error, sa_exc.DBAPIError) and _sqlstate(error) == INVALID_TEXT_REPRESENTATION


def _constraint_field(error: Any) -> Optional[str]:
    """Extracts the offending column(s) from whatever the driver reported."""
    for candidate in _driver_errors(error):
        detail = getattr(candidate, "detail", None)
        if isinstance(detail, str):
            match = _PG_KEY_DETAIL.search(detail)
            if match:
                return match.group("field")
        column = getattr(candidate, "column_name", None)
        if isinstance(column, str) and column:
            return column

    match = _SQLITE_UNIQUE.search(_driver_message(error))
    if match:
        columns = [part.strip().split(".")[-1] for part in match.group("columns").split(",")]
        return ", ".join(columns)

    for candidate in _driver_errors(error):
        constraint = getattr(candidate, "constraint_name", None)
        if isinstance(constraint, str) and constraint:
            return constraint
    return None


def _map_unique_violation(error: Any) -> APIError:
    field = _constraint_field(error) or "field"
    return conflict(f"{field} already exists", {"field": field, "constraint": "unique"})


def _is_record_missing(error: Any) -> bool:
    return isinstance(error, (sa_exc.NoResultFound, StaleDataError))


def _map_invalid_reference(error: Any) -> APIError:
    if _is_foreign_key_violation(error):
        return validation_error(
            "Invalid reference to related record",
            {"constraint": "foreign_key", "field": _constraint_field(error)},
        )
    return validation_error("Invalid ID provided", {"field": _constraint_field(error)})


def _is_storage_error(error: Any) -> bool:
    return isinstance(error, sa_exc.SQLAlchemyError)


def _map_storage_error(error: Any) -> APIError:
    state = _sqlstate(error)
    message = _driver_message(error)
    if state == NUMERIC_VALUE_OUT_OF_RANGE:
        return database_error("Value out of range", error)
    if state == UNDEFINED_TABLE or "no such table" in message:
        return database_error("Table does not exist", error)
    if state == UNDEFINED_COLUMN or "no such column" in message:
        return database_error("Column does not exist", error)
    if isinstance(error, sa_exc.TimeoutError):
        return database_error("Connection pool timeout", error)
    return database_error("Database operation failed", error)


# ══════════════════════════════════════════════════════════════════════════
# Provider helpers
# ══════════════════════════════════════════════════════════════════════════


def _map_identity_error(error: IdentityProviderError) -> APIError:
    if error.status == 401:
        return authentication_error(error.message)
    if error.status == 403:
        return authorization_error(error.message)
    kind = kind_for_status(error.status, default=ErrorKind.EXTERNAL_SERVICE)
    if kind is ErrorKind.EXTERNAL_SERVICE:
        return external_service_error("Identity provider", error.message)
    return APIError(kind, error.message, status_code=error.status)


def _map_media_error(error: MediaHostError) -> APIError:
    if error.http_code == 400:
        return validation_error(f"File upload failed: {error.message}")
    if error.http_code == 401:
        return external_service_error(MEDIA_HOST_NAME, "Authentication failed")
    if error.http_code == 413:
        return validation_error("File size too large")
    return external_service_error(MEDIA_HOST_NAME, error.message)


def _map_http_exception(error: StarletteHTTPException) -> APIError:
    message = error.detail if isinstance(error.detail, str) else None
    if error.status_code == 404:
        return not_found() if message in (None, "Not Found") else APIError(ErrorKind.NOT_FOUND, message)
    kind = kind_for_status(error.status_code)
    return APIError(
        kind,
        message,
        is_operational=kind is not ErrorKind.INTERNAL,
        status_code=error.status_code,
    )


# ══════════════════════════════════════════════════════════════════════════
# Validation-library helpers
# ══════════════════════════════════════════════════════════════════════════


def _issue_list(error: Any) -> Optional[List[Any]]:
    """The list of per-field issues, or None when the shape does not match."""
    if isinstance(error, (PydanticValidationError, RequestValidationError)):
        return list(error.errors())
    for attr in ("details", "errors"):
        value = getattr(error, attr, None)
        if isinstance(value, (list, tuple)):
            return list(value)
    return None


def _is_validation_library_error(error: Any) -> bool:
    if not isinstance(error, BaseException):
        return False
    return _issue_list(error) is not None


def _issue_get(issue: Any, *names: str) -> Any:
    for name in names:
        if isinstance(issue, dict) and name in issue:
            return issue[name]
        if not isinstance(issue, dict) and hasattr(issue, name):
            return getattr(issue, name)
    return None


def _issue_field(issue: Any) -> Optional[str]:
    raw = _issue_get(issue, "field", "path", "loc")
    if isinstance(raw, (list, tuple)):
        parts = [str(p) for p in raw]
        if len(parts) > 1 and parts[0] in _REQUEST_LOCATIONS:
            parts = parts[1:]
        return ".".join(parts)
    return str(raw) if raw is not None else None


def _normalize_issues(issues: List[Any]) -> List[Dict[str, Any]]:
    normalized = []
    for issue in issues:
        message = _issue_get(issue, "message", "msg")
        normalized.append({
            "field": _issue_field(issue),
            "message": str(message) if message is not None else "Invalid value",
        })
    return normalized


def _map_validation_library_error(error: Any) -> APIError:
    return validation_error("Validation failed", _normalize_issues(_issue_list(error) or []))


# ══════════════════════════════════════════════════════════════════════════
# Rule table
# ══════════════════════════════════════════════════════════════════════════

RULES: List[Rule] = [
    ("api_error", lambda e: isinstance(e, APIError), lambda e: e),
    ("storage_unique_violation", _is_unique_violation, _map_unique_violation),
    ("storage_record_missing", _is_record_missing, lambda e: not_found("Record")),
    ("storage_invalid_reference", _is_invalid_reference, _map_invalid_reference),
    ("storage_error", _is_storage_error, _map_storage_error),
    ("identity_provider", lambda e: isinstance(e, IdentityProviderError), _map_identity_error),
    ("media_host", lambda e: isinstance(e, MediaHostError), _map_media_error),
    ("http_exception", lambda e: isinstance(e, StarletteHTTPException), _map_http_exception),
    ("validation_library", _is_validation_library_error, _map_validation_library_error),
]


def classify(raw: Any) -> APIError:
    """
    Map any failure to an APIError. Never raises.

    A rule that itself blows up (a hostile __getattr__, a broken __str__)
    is logged and classification falls through to INTERNAL.
    """
    try:
        for name, predicate, mapper in RULES:
            if predicate(raw):
                return mapper(raw)
    except Exception:
        logger.exception("Error classification failed for %s", type(raw).__name__)
    return internal_error(raw)
