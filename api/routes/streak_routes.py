"""Streak endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Request

from core.database import DbSession, DbSessionReadOnly
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from core.wide_event import set_wide_event_fields
from models import today
from schemas import StreakData
from services.checkins_service import get_streak_data, refresh_user_streak
from services.users_service import UserNotFoundError

router = APIRouter(prefix="/api/streak", tags=["streaks"])

ValidatedUserId = Annotated[str, Path(min_length=1, max_length=255)]


@router.get(
    "/{user_id}",
    response_model=StreakData,
    responses={404: {"description": "User not found"}},
)
@limiter.limit(READ_LIMIT)
async def get_streak_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSessionReadOnly,
) -> StreakData:
    """Compute the user's streak as of today (UTC).

    Runs in a read-only transaction, so nothing is stored. A scheduled
    rest day today keeps the streak alive without a check-in.
    """
    set_wide_event_fields(user_id=user_id)
    try:
        streak = await get_streak_data(db, user_id, today())
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")

    return streak


@router.post(
    "/{user_id}/refresh",
    response_model=StreakData,
    responses={404: {"description": "User not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def refresh_streak_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSession,
) -> StreakData:
    """Recompute the streak and store the counters on the user."""
    set_wide_event_fields(user_id=user_id)
    try:
        streak = await refresh_user_streak(db, user_id, today())
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")

    return streak
