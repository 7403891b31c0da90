"""Check-in endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, Request

from core.database import DbSession, DbSessionReadOnly
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from core.wide_event import set_wide_event_fields
from models import today
from schemas import CheckInCreateRequest, CheckInResponse, CheckInResult
from services.checkins_service import (
    RECENT_CHECKINS_LIMIT,
    CheckInAlreadyExistsError,
    CheckInValidationError,
    list_checkins,
    log_checkin,
)
from services.users_service import UserNotFoundError

router = APIRouter(prefix="/api/checkins", tags=["checkins"])

ValidatedUserId = Annotated[str, Path(min_length=1, max_length=255)]


@router.post(
    "",
    response_model=CheckInResult,
    status_code=201,
    responses={
        400: {"description": "Check-in dated in the future"},
        404: {"description": "User not found"},
        409: {"description": "Already checked in for this date"},
    },
)
@limiter.limit(WRITE_LIMIT)
async def create_checkin_endpoint(
    request: Request,
    body: CheckInCreateRequest,
    db: DbSession,
) -> CheckInResult:
    """Log a check-in and return it with the refreshed streak."""
    set_wide_event_fields(user_id=body.user_id, checkin_status=body.status.value)

    try:
        result = await log_checkin(
            db,
            body.user_id,
            status=body.status,
            today=today(),
            checkin_date=body.checkin_date,
            workout_type=body.workout_type,
            notes=body.notes,
            photo_url=body.photo_url,
            discord_message_id=body.discord_message_id,
        )
    except CheckInValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except CheckInAlreadyExistsError:
        raise HTTPException(
            status_code=409, detail="Already checked in for this date"
        )

    return result


@router.get("/{user_id}", response_model=list[CheckInResponse])
@limiter.limit(READ_LIMIT)
async def list_checkins_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSessionReadOnly,
    limit: Annotated[int | None, Query(ge=1, le=365)] = None,
) -> list[CheckInResponse]:
    """A user's check-ins, newest first."""
    return list(await list_checkins(db, user_id, limit=limit))


@router.get("/{user_id}/recent", response_model=list[CheckInResponse])
@limiter.limit(READ_LIMIT)
async def recent_checkins_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSessionReadOnly,
) -> list[CheckInResponse]:
    """The user's five most recent check-ins."""
    return list(await list_checkins(db, user_id, limit=RECENT_CHECKINS_LIMIT))
