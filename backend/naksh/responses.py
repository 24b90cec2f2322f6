"""
Naksh Backend — Response Envelope Builders
============================================

What:  Builds every JSON body the API returns.
How:   Pure `build_*` functions return plain dicts; the `*_response`
       wrappers turn them into Starlette responses with the right status.
Who:   Route handlers (success paths), the error middleware and the rate
       limiter (failure paths), the health route.

Envelope shapes:
    success:    {"success": true,  "message", "data", "timestamp"}
    paginated:  {"success": true,  "message", "data", "pagination", "timestamp"}
    failure:    {"success": false, "error": {message, code, statusCode, details?}, "timestamp"}

Exactly one of `data` / `error` is present. `data` is always present on
success, even when it is null.
"""

import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse, Response

# Process start, for the health payload's uptime
_start_time = time.time()


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-01-15T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ══════════════════════════════════════════════════════════════════════════
# Pure builders
# ══════════════════════════════════════════════════════════════════════════


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    pages = math.ceil(total / limit) if limit > 0 else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


def build_success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": utc_timestamp(),
    }


def build_paginated(
    data: Any,
    page: int,
    limit: int,
    total: int,
    message: str = "Success",
) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        "pagination": pagination_meta(page, limit, total),
        "timestamp": utc_timestamp(),
    }


def build_error(
    message: str,
    status_code: int = 500,
    code: Optional[str] = None,
    details: Any = None,
) -> Dict[str, Any]:
    error: Dict[str, Any] = {
        "message": message,
        "code": code,
        "statusCode": status_code,
    }
    if details:
        error["details"] = details
    return {
        "success": False,
        "error": error,
        "timestamp": utc_timestamp(),
    }


def build_health(checks: Mapping[str, Mapping[str, Any]], version: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
    """
    Aggregate named sub-checks into one health payload.

    Returns (200, body) when every check reports status "healthy",
    otherwise (503, body).
    """
    healthy = all(check.get("status") == "healthy" for check in checks.values())
    body: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utc_timestamp(),
        "uptime": round(time.time() - _start_time, 2),
        "checks": dict(checks),
    }
    if version:
        body["version"] = version
    return (200 if healthy else 503), body


# ══════════════════════════════════════════════════════════════════════════
# JSON wrappers
# ══════════════════════════════════════════════════════════════════════════


def success_response(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(build_success(data, message)))


def created_response(data: Any = None, message: str = "Resource created successfully") -> JSONResponse:
    return success_response(data, message, status_code=201)


def paginated_response(
    data: Any,
    page: int,
    limit: int,
    total: int,
    message: str = "Success",
) -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content=jsonable_encoder(build_paginated(data, page, limit, total, message)),
    )


def error_response(
    message: str,
    status_code: int = 500,
    code: Optional[str] = None,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(build_error(message, status_code, code, details)),
        headers=headers,
    )


def no_content_response() -> Response:
    # 204 carries no body
    return Response(status_code=204)
