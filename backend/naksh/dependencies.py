"""
Naksh Backend — Request Dependencies
======================================

What:  FastAPI dependencies for the authenticated user and the external
       collaborators (identity provider, media host).
How:   Collaborators live on `app.state` (set in main.create_app()); the
       dependencies read them from there so tests can override either the
       state attribute or the dependency itself.
Who:   Route handlers via Depends(...).

Auth levels:
    get_current_user_id   optional; None for anonymous requests
    require_user_id       401 when anonymous
    require_active_user   401 when the id has no local user,
                          403 while the user is suspended
    require_moderator     403 unless the active user is a moderator
"""

from datetime import datetime, timezone

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.exceptions import authentication_error, authorization_error
from naksh.models.user import User
from naksh.providers.identity import IdentityProvider
from naksh.providers.media import MediaHost
from naksh.utils import as_utc


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_media_host(request: Request) -> MediaHost:
    return request.app.state.media_host


async def get_current_user_id(
    request: Request,
    identity: IdentityProvider = Depends(get_identity_provider),
) -> str | None:
    user_id = await identity.authenticate(request)
    # Read back by the access log and the error logger
    request.state.user_id = user_id
    return user_id


async def require_user_id(user_id: str | None = Depends(get_current_user_id)) -> str:
    if not user_id:
        raise authentication_error()
    return user_id


async def require_active_user(
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """The caller's local User row; refuses suspended accounts."""
    user = await db.get(User, user_id)
    if user is None:
        raise authentication_error("User not found. Please complete your profile first.")
    if user.suspended_until is not None and as_utc(user.suspended_until) > datetime.now(timezone.utc):
        raise authorization_error(
            f"Account suspended until {as_utc(user.suspended_until).isoformat()}"
        )
    return user


async def require_moderator(user: User = Depends(require_active_user)) -> User:
    if not user.is_moderator:
        raise authorization_error("Moderator access required")
    return user
