"""Small helpers shared by services, dependencies and middleware."""

from datetime import datetime, timezone
from typing import Optional

from starlette.requests import Request


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    Columns are TIMESTAMP WITH TIME ZONE; SQLite (tests) hands them back naive.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def client_ip(request: Request) -> str:
    """
    The socket peer address.

    X-Forwarded-For is client-controlled and never read here. Behind a
    proxy, run uvicorn with --proxy-headers and --forwarded-allow-ips so
    that request.client already holds the forwarded address.
    """
    return request.client.host if request.client else "unknown"
