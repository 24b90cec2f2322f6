"""
Naksh Backend — FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (uvicorn naksh.main:app) and the test suite.
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware chain (outermost first):                     │
    │    RateLimit → RequestID → Logging → GZip → CORS         │
    │                                                          │
    │  Routers (BoundaryRoute):                                │
    │    users · posts · comments · reactions · follows        │
    │    chats · messages · moderation · device-tokens         │
    │    media · health                                        │
    │                                                          │
    │  Exception handlers (terminal):                          │
    │    APIError · HTTPException · RequestValidationError     │
    │    Exception  ──────────────▶  middleware.errors         │
    └──────────────────────────────────────────────────────────┘

Collaborators:
    The identity provider and the media host are built once here and kept on
    `app.state`; handlers reach them through naksh.dependencies. Tests pass
    their own to create_app().
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from naksh import __version__
from naksh.config import settings
from naksh.database import dispose_engine
from naksh.exceptions import APIError
from naksh.middleware.errors import handle_error
from naksh.middleware.logging import RequestLoggingMiddleware
from naksh.middleware.rate_limit import RateLimitMiddleware
from naksh.middleware.request_id import RequestIDMiddleware
from naksh.providers.identity import GatewayIdentityProvider, IdentityProvider
from naksh.providers.media import CloudinaryMediaHost, MediaHost
from naksh.routes import chats, device_tokens, follows, health, media, moderation, posts, reactions, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] naksh.services.post_service: message
    Records from the access log carry request fields via `extra=`.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Third-party libraries log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Naksh Backend %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")
        # Keep serving: /health reports the unconfigured media host

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Naksh Backend shutting down...")
    await app.state.media_host.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Route every error to the single renderer in naksh.middleware.errors.

    Handlers registered:
        APIError                raised in routes (after BoundaryRoute) and dependencies
        StarletteHTTPException  unmatched routes (404 → ROUTE_NOT_FOUND), 405
        RequestValidationError  body/query validation outside a BoundaryRoute
        Exception               anything raised by middleware
    """

    async def _handle(request: Request, exc: Exception):
        return await handle_error(request, exc)

    app.add_exception_handler(APIError, _handle)
    app.add_exception_handler(StarletteHTTPException, _handle)
    app.add_exception_handler(RequestValidationError, _handle)
    app.add_exception_handler(Exception, _handle)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    identity: Optional[IdentityProvider] = None,
    media_host: Optional[MediaHost] = None,
    rate_limit_requests: Optional[int] = None,
) -> FastAPI:
    """
    Assemble the application.

    Args:
        identity:            identity provider (default: GatewayIdentityProvider)
        media_host:          media host client (default: CloudinaryMediaHost)
        rate_limit_requests: override the per-window request budget
    """
    app = FastAPI(
        title="Naksh API",
        description="Backend for Naksh: ephemeral posts, reactions, follows, chat and moderation.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.identity = identity or GatewayIdentityProvider()
    app.state.media_host = media_host or CloudinaryMediaHost()

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware, max_requests=rate_limit_requests)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(posts.comments_router)
    app.include_router(reactions.router)
    app.include_router(follows.router)
    app.include_router(chats.router)
    app.include_router(chats.messages_router)
    app.include_router(moderation.router)
    app.include_router(device_tokens.router)
    app.include_router(media.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `naksh.main:app` to be importable
app = create_app()
