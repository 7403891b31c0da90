"""User registration and profile endpoints.

Identity is supplied by the caller (the Discord bot or the web app) in the
path; there is no session auth on this API.
"""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Request

from core.database import DbSession, DbSessionReadOnly
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from core.wide_event import set_wide_event_fields
from schemas import UserResponse, UserUpsertRequest
from services.users_service import (
    DiscordIdTakenError,
    UserNotFoundError,
    get_user,
    register_user,
)

router = APIRouter(prefix="/api/users", tags=["users"])

ValidatedUserId = Annotated[str, Path(min_length=1, max_length=255)]


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    responses={409: {"description": "Discord account linked to another user"}},
)
@limiter.limit(WRITE_LIMIT)
async def upsert_user_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    body: UserUpsertRequest,
    db: DbSession,
) -> UserResponse:
    """Create a user or update their profile. Streak counters are untouched."""
    set_wide_event_fields(user_id=user_id)
    try:
        return await register_user(
            db,
            user_id,
            username=body.username,
            discord_id=body.discord_id,
            avatar_url=body.avatar_url,
        )
    except DiscordIdTakenError:
        raise HTTPException(
            status_code=409,
            detail="Discord account already linked to another user",
        )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses={404: {"description": "User not found"}},
)
@limiter.limit(READ_LIMIT)
async def get_user_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSessionReadOnly,
) -> UserResponse:
    """Get a user with their last stored streak counters."""
    try:
        return await get_user(db, user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
