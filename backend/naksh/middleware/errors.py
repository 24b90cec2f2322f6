"""
Naksh Backend — Error Middleware (terminal handler)
=====================================================

What:  Turns an APIError (or anything else that slipped through) into the
       failure envelope, and logs it once.
How:   `handle_error` is the single function behind every exception handler
       registered in main.register_exception_handlers():
           1. classify the exception (no-op for APIError)
           2. log_error(): ERROR + stack for >= 500, WARNING for 4xx
           3. render_error(): disclosure depends on the environment
Who:   FastAPI/Starlette exception handling; never called by route code.

Disclosure:
    development  → message, code, statusCode, details, stack
                   (+ repr of the original value for internal errors)
    production   → operational errors: message, code, statusCode, details
                   non-operational:     500 "An unexpected error occurred"
"""

import logging
import traceback
from typing import Any, Dict, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from naksh.config import settings
from naksh.errors.transformer import classify
from naksh.exceptions import APIError, ErrorKind, GENERIC_ERROR_MESSAGE, route_not_found
from naksh.middleware.request_id import request_id_var
from naksh.responses import build_error, utc_timestamp
from naksh.utils import client_ip

logger = logging.getLogger(__name__)


def _root_exception(error: APIError) -> BaseException:
    return error.original or error.__cause__ or error


def _format_stack(error: APIError) -> str:
    exc = _root_exception(error)
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def log_error(request: Request, error: APIError) -> Dict[str, Any]:
    """
    Log one line per failed request with structured context in `extra`.

    Returns the context dict (handy for tests and for forwarding elsewhere).
    """
    context = {
        "timestamp": utc_timestamp(),
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip(request),
        "user_agent": request.headers.get("user-agent", ""),
        "user_id": getattr(request.state, "user_id", None) or "anonymous",
        "request_id": request_id_var.get(""),
        "error_kind": error.kind.name,
        "error_code": error.code,
        "status": error.status_code,
    }

    if error.status_code >= 500:
        exc = _root_exception(error)
        logger.error(
            "[%s] %s %s -> %d %s: %s",
            context["request_id"],
            context["method"],
            context["path"],
            error.status_code,
            error.code,
            exc if exc is not error else error.message,
            exc_info=(type(exc), exc, exc.__traceback__),
            extra=context,
        )
    else:
        logger.warning(
            "[%s] %s %s -> %d %s: %s",
            context["request_id"],
            context["method"],
            context["path"],
            error.status_code,
            error.code,
            error.message,
            extra=context,
        )
    return context


def render_error(error: APIError, development: bool) -> Tuple[int, Dict[str, Any], Dict[str, str]]:
    """Returns (status_code, body, headers) for the failure envelope."""
    headers: Dict[str, str] = {}
    if error.retry_after is not None:
        headers["Retry-After"] = str(error.retry_after)

    if development:
        body = build_error(error.message, error.status_code, error.code, error.details)
        body["error"]["stack"] = _format_stack(error)
        if error.kind is ErrorKind.INTERNAL:
            body["error"]["original"] = repr(error.original) if error.original else error.debug_repr
        return error.status_code, body, headers

    if error.is_operational:
        return error.status_code, build_error(error.message, error.status_code, error.code, error.details), headers

    status = ErrorKind.INTERNAL.status_code
    return status, build_error(GENERIC_ERROR_MESSAGE, status, ErrorKind.INTERNAL.code), headers


def to_api_error(request: Request, exc: Any) -> APIError:
    # Unmatched routes surface as Starlette's own 404
    if isinstance(exc, StarletteHTTPException) and exc.status_code == 404 and exc.detail == "Not Found":
        return route_not_found(request.url.path)
    return classify(exc)


async def handle_error(request: Request, exc: Any, development: Optional[bool] = None) -> JSONResponse:
    error = to_api_error(request, exc)
    log_error(request, error)
    if development is None:
        development = settings.is_development
    status, body, headers = render_error(error, development)
    return JSONResponse(status_code=status, content=jsonable_encoder(body), headers=headers or None)
