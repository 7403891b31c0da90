"""Workout schedule endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, Request

from core.database import DbSession, DbSessionReadOnly
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from core.wide_event import set_wide_event_fields
from models import today
from schemas import (
    DayTypeResult,
    FlexibleScheduleRequest,
    ScheduleResponse,
    WeeklyScheduleRequest,
)
from services.schedule_service import (
    ScheduleNotFoundError,
    ScheduleValidationError,
    advance_rotation_cursor,
    deactivate_schedule,
    get_day_type,
    get_schedule,
    upsert_flexible_schedule,
    upsert_weekly_schedule,
)
from services.users_service import UserNotFoundError

router = APIRouter(prefix="/api/schedules", tags=["schedules"])

ValidatedUserId = Annotated[str, Path(min_length=1, max_length=255)]

_WRITE_RESPONSES = {
    400: {"description": "Invalid schedule"},
    404: {"description": "User not found"},
}


@router.post(
    "",
    response_model=ScheduleResponse,
    responses=_WRITE_RESPONSES,
)
@limiter.limit(WRITE_LIMIT)
async def upsert_weekly_schedule_endpoint(
    request: Request,
    body: WeeklyScheduleRequest,
    db: DbSession,
) -> ScheduleResponse:
    """Create or replace a weekly schedule from a list of day names."""
    set_wide_event_fields(user_id=body.user_id)
    try:
        schedule = await upsert_weekly_schedule(
            db, body.user_id, body.days_of_week, workout_time=body.time
        )
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")

    return ScheduleResponse.model_validate(schedule)


@router.post(
    "/flexible",
    response_model=ScheduleResponse,
    responses=_WRITE_RESPONSES,
)
@limiter.limit(WRITE_LIMIT)
async def upsert_flexible_schedule_endpoint(
    request: Request,
    body: FlexibleScheduleRequest,
    db: DbSession,
) -> ScheduleResponse:
    """Create or replace a weekly, rotating or custom schedule.

    Rotating schedules restart at the first token of the pattern today.
    """
    set_wide_event_fields(user_id=body.user_id)
    try:
        schedule = await upsert_flexible_schedule(
            db,
            body.user_id,
            schedule_type=body.schedule_type,
            rotation_pattern=body.rotation_pattern,
            weekdays=body.weekday_flags,
            rest_days_allowed=body.rest_days_allowed,
            workout_time=body.workout_time,
        )
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")

    return ScheduleResponse.model_validate(schedule)


@router.get(
    "/{user_id}",
    response_model=ScheduleResponse,
    responses={404: {"description": "Schedule not found"}},
)
@limiter.limit(READ_LIMIT)
async def get_schedule_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSessionReadOnly,
) -> ScheduleResponse:
    try:
        schedule = await get_schedule(db, user_id)
    except ScheduleNotFoundError:
        raise HTTPException(status_code=404, detail="Schedule not found")

    return ScheduleResponse.model_validate(schedule)


@router.get(
    "/{user_id}/day-type",
    response_model=DayTypeResult,
    responses={404: {"description": "User not found"}},
)
@limiter.limit(READ_LIMIT)
async def get_day_type_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSessionReadOnly,
    on_date: Annotated[date | None, Query(alias="date")] = None,
) -> DayTypeResult:
    """Resolve Workout, Rest or Unscheduled for a date (default today, UTC).

    Any date works, including dates before a rotating schedule started.
    """
    try:
        return await get_day_type(db, user_id, on_date or today())
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")


@router.post(
    "/{user_id}/advance",
    response_model=ScheduleResponse,
    responses={404: {"description": "Schedule not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def advance_rotation_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSession,
) -> ScheduleResponse:
    """Sync the rotation cursor to today. Repeat calls on one day are no-ops."""
    try:
        schedule = await advance_rotation_cursor(db, user_id, today())
    except ScheduleNotFoundError:
        raise HTTPException(status_code=404, detail="Schedule not found")

    return ScheduleResponse.model_validate(schedule)


@router.delete(
    "/{user_id}",
    response_model=ScheduleResponse,
    responses={404: {"description": "Schedule not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def deactivate_schedule_endpoint(
    request: Request,
    user_id: ValidatedUserId,
    db: DbSession,
) -> ScheduleResponse:
    """Deactivate the schedule; every day resolves Unscheduled until replaced."""
    try:
        schedule = await deactivate_schedule(db, user_id)
    except ScheduleNotFoundError:
        raise HTTPException(status_code=404, detail="Schedule not found")

    return ScheduleResponse.model_validate(schedule)
