"""
Naksh Backend — Health Check Route
====================================

What:  Health check endpoint for monitoring and load balancer checks.
How:   Runs a lightweight check against each critical dependency (SELECT 1
       on the database, ping on the media host) and aggregates them with
       build_health(): 200 when every check is healthy, 503 otherwise.
Who:   Docker health checks, load balancers, monitoring.

Also serves GET /api, a small index of the API for humans.
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from naksh import __version__
from naksh.database import get_db_session
from naksh.dependencies import get_media_host
from naksh.errors import BoundaryRoute
from naksh.providers.media import MediaHost
from naksh.responses import build_health, success_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"], route_class=BoundaryRoute)


async def _check_database(db: AsyncSession) -> dict:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", e)
        return {"status": "unhealthy", "message": "Database connection failed"}
    return {
        "status": "healthy",
        "message": "Database connection successful",
        "responseTime": round((time.perf_counter() - start) * 1000, 2),
    }


async def _check_media_host(host: MediaHost) -> dict:
    try:
        available = await host.health_check()
    except Exception as e:
        logger.warning("Health check: media host check raised: %s", e)
        available = False
    if available:
        return {"status": "healthy", "message": "Media host reachable"}
    return {"status": "unhealthy", "message": "Media host unavailable"}


@router.get("/health", summary="Service health check")
async def health_check(
    db: AsyncSession = Depends(get_db_session),
    host: MediaHost = Depends(get_media_host),
) -> JSONResponse:
    status_code, body = build_health(
        {
            "database": await _check_database(db),
            "mediaHost": await _check_media_host(host),
        },
        version=__version__,
    )
    return JSONResponse(status_code=status_code, content=body)


@router.get("/api", summary="API index")
async def api_index():
    return success_response(
        {
            "name": "Naksh API",
            "version": __version__,
            "endpoints": {
                "users": "/api/users",
                "posts": "/api/posts",
                "comments": "/api/comments",
                "reactions": "/api/reactions",
                "follows": "/api/follows",
                "chats": "/api/chats",
                "messages": "/api/messages",
                "moderation": "/api/moderation",
                "deviceTokens": "/api/device-tokens",
                "media": "/api/media",
            },
        },
        "Naksh API is running",
    )
