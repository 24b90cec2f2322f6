"""
Naksh Backend — Validation Utilities
======================================

What:  Small, synchronous checks that raise VALIDATION errors with
       human-readable messages.
How:   Each helper raises `validation_error(...)` on the first problem it
       finds (except `require_fields`, which reports every missing field at
       once) and returns the normalized value where one is useful.
Who:   Services and route handlers, for checks that Pydantic body models do
       not express (cross-field rules, enum lists shared with the database,
       query parameters passed through as raw strings).
"""

import math
import re
import uuid
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from naksh.exceptions import validation_error

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,30}$")

MAX_PAGE_LIMIT = 100

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_IFRAME_BLOCK = re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE)
_JS_SCHEME = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def require_fields(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    """
    Raise when any of `fields` is absent, None or the empty string.

    Every missing field is reported, in the order given:
        details = {"missingFields": ["username", "email"]}
    """
    missing = [field for field in fields if _is_missing(data.get(field))]
    if missing:
        raise validation_error(
            f"Missing required fields: {', '.join(missing)}",
            {"missingFields": missing},
        )


def require_email(email: Any) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email):
        raise validation_error("Invalid email format")
    return email


def require_username(username: Any) -> str:
    if not isinstance(username, str) or not USERNAME_RE.match(username):
        raise validation_error(
            "Username must be 3-30 characters long and contain only letters, "
            "numbers, and underscores"
        )
    return username


def require_password_strength(password: Any) -> str:
    if not isinstance(password, str):
        raise validation_error("Password is required")
    # Checked in order; the first failing rule is reported.
    if len(password) < 8:
        raise validation_error("Password must be at least 8 characters long")
    if not re.search(r"[a-z]", password):
        raise validation_error("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        raise validation_error("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        raise validation_error("Password must contain at least one number")
    return password


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def require_pagination(page: Any = 1, limit: Any = 10) -> Tuple[int, int]:
    """
    Normalize pagination parameters.

    Accepts integers or numeric strings. Returns (page, limit).
    """
    page_num = _as_int(page)
    if page_num is None or page_num < 1:
        raise validation_error("Page must be a positive integer")
    limit_num = _as_int(limit)
    if limit_num is None or limit_num < 1 or limit_num > MAX_PAGE_LIMIT:
        raise validation_error(f"Limit must be between 1 and {MAX_PAGE_LIMIT}")
    return page_num, limit_num


def require_enum(value: Any, allowed: Sequence[str], field_name: str) -> str:
    if value not in allowed:
        raise validation_error(
            f"Invalid {field_name}. Allowed values: {', '.join(allowed)}",
            {"field": field_name, "allowed": list(allowed)},
        )
    return value


def require_string_length(
    value: Any,
    name: str,
    min_length: int = 0,
    max_length: Optional[int] = None,
    required: bool = False,
) -> Optional[str]:
    """
    Length check for an optional string.

    An empty or missing value passes unless `required` is set.
    """
    if _is_missing(value):
        if required:
            raise validation_error(f"{name} is required")
        return value
    if not isinstance(value, str):
        raise validation_error(f"{name} must be a string")
    if len(value) < min_length:
        raise validation_error(f"{name} must be at least {min_length} characters long")
    if max_length is not None and len(value) > max_length:
        raise validation_error(f"{name} must be at most {max_length} characters long")
    return value


def require_array(
    value: Any,
    name: str,
    min_length: int = 0,
    max_length: Optional[int] = None,
    required: bool = False,
) -> Optional[List[Any]]:
    if value is None:
        if required:
            raise validation_error(f"{name} is required")
        return None
    if not isinstance(value, (list, tuple)):
        raise validation_error(f"{name} must be an array")
    if len(value) < min_length:
        raise validation_error(f"{name} must have at least {min_length} items")
    if max_length is not None and len(value) > max_length:
        raise validation_error(f"{name} must have at most {max_length} items")
    return list(value)


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def require_coordinates(latitude: Any, longitude: Any) -> Tuple[float, float]:
    """Latitude in [-90, 90], longitude in [-180, 180). Returns floats."""
    lat = _as_float(latitude)
    if lat is None or lat < -90 or lat > 90:
        raise validation_error("Invalid latitude. Must be between -90 and 90")
    lng = _as_float(longitude)
    if lng is None or lng < -180 or lng >= 180:
        raise validation_error("Invalid longitude. Must be between -180 and 180")
    return lat, lng


def require_uuid(value: Any, field_name: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise validation_error("Invalid ID format", {"field": field_name})


def sanitize_html(html: str) -> str:
    """
    Strip script/iframe blocks, `javascript:` schemes and inline event handlers.

    Best-effort cleanup of user text; not an HTML sanitizer.
    """
    cleaned = _SCRIPT_BLOCK.sub("", html)
    cleaned = _IFRAME_BLOCK.sub("", cleaned)
    cleaned = _JS_SCHEME.sub("", cleaned)
    return _EVENT_HANDLER.sub("", cleaned)
