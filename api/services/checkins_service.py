"""Check-in service: logging check-ins and computing streaks from the stores.

This module handles:
- Streak computation for a user as of a given day (read-only)
- Persisting the computed streak onto the user
- Check-in logging (the single write path for check-ins)

``today`` is always passed in by the caller so results are deterministic
and tests can pin the date.
"""

from collections.abc import Sequence
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.telemetry import add_custom_attribute, log_business_event, track_operation
from core.wide_event import set_wide_event_fields
from models import CheckIn, CheckInStatus
from repositories.checkin_repository import CheckInRepository
from repositories.schedule_repository import ScheduleRepository
from repositories.user_repository import UserRepository
from schemas import CheckInResponse, CheckInResult, StreakData
from services.schedule_service import resolve_day_type
from services.streaks_service import CheckInEntry, build_history, calculate_streak
from services.users_service import UserNotFoundError

logger = get_logger(__name__)

RECENT_CHECKINS_LIMIT = 5


class CheckInValidationError(Exception):
    """Raised when a check-in request is not acceptable."""

    pass


class CheckInAlreadyExistsError(Exception):
    """Raised when the user already has a check-in on that date."""

    def __init__(self, user_id: str, checkin_date: date):
        self.user_id = user_id
        self.checkin_date = checkin_date
        super().__init__(
            f"Check-in already exists for {checkin_date.isoformat()}"
        )


def to_checkin_response(checkin: CheckIn) -> CheckInResponse:
    return CheckInResponse(
        id=checkin.id,
        user_id=checkin.user_id,
        date=checkin.checkin_date,
        status=checkin.status,
        workout_type=checkin.workout_type,
        notes=checkin.notes,
        photo_url=checkin.photo_url,
        discord_message_id=checkin.discord_message_id,
        created_at=checkin.created_at,
    )


@track_operation("streak_computation")
async def get_streak_data(db: AsyncSession, user_id: str, today: date) -> StreakData:
    """Compute a user's streak as of today. Never writes.

    Schedule and check-ins are read once; a missing schedule counts as
    Unscheduled, so no implicit rest day is added.

    Raises:
        UserNotFoundError: No such user.
    """
    if not await UserRepository(db).exists(user_id):
        raise UserNotFoundError(user_id)

    schedule = await ScheduleRepository(db).get_by_user(user_id)
    checkins = await CheckInRepository(db).list_by_user(user_id)

    day_type = resolve_day_type(schedule, today)
    history = build_history(
        (CheckInEntry(day=c.checkin_date, checkin_id=c.id) for c in checkins),
        day_type,
        today,
    )
    counts = calculate_streak(history, today)

    last_checkin_date = max((c.checkin_date for c in checkins), default=None)

    return StreakData(
        user_id=user_id,
        as_of=today,
        current_streak=counts.current_streak,
        longest_streak=counts.longest_streak,
        total_checkins=counts.total_checkins,
        day_type=day_type,
        last_checkin_date=last_checkin_date,
    )


async def refresh_user_streak(
    db: AsyncSession, user_id: str, today: date
) -> StreakData:
    """Compute the streak and store it on the user.

    Holds the user row lock so a concurrent check-in cannot commit between
    the read and the write.
    """
    await UserRepository(db).lock(user_id)
    streak = await get_streak_data(db, user_id, today)

    await UserRepository(db).update_streak_fields(
        user_id,
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        total_checkins=streak.total_checkins,
    )

    set_wide_event_fields(current_streak=streak.current_streak)
    logger.info(
        "streak.refreshed",
        user_id=user_id,
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        total_checkins=streak.total_checkins,
    )
    return streak


@track_operation("checkin_logging")
async def log_checkin(
    db: AsyncSession,
    user_id: str,
    *,
    status: CheckInStatus,
    today: date,
    checkin_date: date | None = None,
    workout_type: str | None = None,
    notes: str | None = None,
    photo_url: str | None = None,
    discord_message_id: str | None = None,
) -> CheckInResult:
    """Record a check-in and refresh the user's streak.

    Duplicate dates are caught by the (user_id, date) unique constraint,
    not by a prior lookup, so two concurrent submissions cannot both land.
    The user row stays locked until commit, so check-ins for different
    dates are applied one at a time and the stored aggregate always
    includes every committed row.

    Raises:
        CheckInValidationError: checkin_date is after today.
        UserNotFoundError: No such user.
        CheckInAlreadyExistsError: A check-in for that date already exists.
    """
    checkin_date = checkin_date or today
    if checkin_date > today:
        raise CheckInValidationError("Check-ins cannot be dated in the future")

    if not await UserRepository(db).lock(user_id):
        raise UserNotFoundError(user_id)

    add_custom_attribute("checkin.status", status.value)

    try:
        async with db.begin_nested():
            checkin = await CheckInRepository(db).create(
                user_id,
                checkin_date,
                status,
                workout_type=workout_type,
                notes=notes,
                photo_url=photo_url,
                discord_message_id=discord_message_id,
            )
    except IntegrityError:
        logger.info(
            "checkin.duplicate",
            user_id=user_id,
            checkin_date=checkin_date.isoformat(),
        )
        raise CheckInAlreadyExistsError(user_id, checkin_date) from None

    streak = await refresh_user_streak(db, user_id, today)

    log_business_event("checkins.logged", 1, {"status": status.value})
    logger.info(
        "checkin.logged",
        user_id=user_id,
        checkin_date=checkin_date.isoformat(),
        status=status.value,
    )

    return CheckInResult(checkin=to_checkin_response(checkin), streak=streak)


async def list_checkins(
    db: AsyncSession,
    user_id: str,
    *,
    limit: int | None = None,
) -> Sequence[CheckInResponse]:
    """Check-ins for a user, newest first."""
    checkins = await CheckInRepository(db).list_recent(user_id, limit=limit)
    return [to_checkin_response(c) for c in checkins]
