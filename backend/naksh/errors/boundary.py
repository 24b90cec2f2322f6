"""
Naksh Backend — Async Boundary
================================

What:  Guarantees that every failure leaving a route handler is an APIError.
How:   `async_boundary` wraps a coroutine function; `BoundaryRoute` applies it
       to the whole FastAPI request handler (body parsing, dependency
       resolution and the endpoint itself).
Who:   Every router is created with `route_class=BoundaryRoute`.

Why the route class and not only exception handlers:
    Starlette hands exceptions registered against `Exception` to
    ServerErrorMiddleware, which renders them and then re-raises. Converting
    inside the route means only APIError reaches the exception layer, where
    the registered APIError handler renders it and the request ends cleanly.
"""

import functools
from typing import Any, Awaitable, Callable, TypeVar

from fastapi.routing import APIRoute

from naksh.errors.transformer import classify

T = TypeVar("T")


def async_boundary(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """
    Decorator: success passes through untouched; any exception is classified
    and re-raised as an APIError chained to the original.

    Cancellation (BaseException) is not intercepted.
    """

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await fn(*args, **kwargs)
        except Exception as exc:
            error = classify(exc)
            if error is exc:
                raise
            raise error from exc

    return wrapper


class BoundaryRoute(APIRoute):
    """APIRoute whose request handler runs inside `async_boundary`."""

    def get_route_handler(self) -> Callable:
        return async_boundary(super().get_route_handler())
