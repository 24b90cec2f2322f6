"""
Naksh Backend — User Routes
=============================

What:  The caller's own profile (create on first login, read, update) and
       public profiles.
How:   POST /me needs only an authenticated identity; there is no local
       user yet. Everything that edits an existing profile goes through
       require_active_user, so suspended users cannot change it.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.dependencies import require_active_user, require_user_id
from naksh.errors import BoundaryRoute
from naksh.models.user import User
from naksh.responses import created_response, success_response
from naksh.schemas.common import to_wire
from naksh.schemas.users import ProfileCreate, ProfileUpdate, UserOut
from naksh.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Users"], route_class=BoundaryRoute)


@router.get("/me", summary="The caller's profile")
async def get_me(
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    return success_response(to_wire(UserOut, await user_service.get_user(db, user_id)))


@router.post("/me", status_code=201, summary="Create the caller's profile")
async def create_me(
    body: ProfileCreate,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    user = await user_service.create_profile(db, user_id, body)
    return created_response(to_wire(UserOut, user), "Profile created successfully")


@router.patch("/me", summary="Update the caller's profile")
async def update_me(
    body: ProfileUpdate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    user = await user_service.update_me(db, user, body)
    return success_response(to_wire(UserOut, user), "Profile updated successfully")


@router.get("/check-username", summary="Whether a username is free")
async def check_username(username: str = Query(...), db: AsyncSession = Depends(get_db_session)):
    available = await user_service.username_available(db, username)
    return success_response({"username": username, "available": available})


@router.get("/{user_id}", summary="A user's public profile")
async def get_user(user_id: str, db: AsyncSession = Depends(get_db_session)):
    return success_response(to_wire(UserOut, await user_service.get_user(db, user_id)))
