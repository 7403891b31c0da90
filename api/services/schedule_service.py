"""Schedule service: day-type resolution and schedule management.

``resolve_day_type`` is a pure function of a schedule and a date. It never
reads the clock and never writes; the stored rotation cursor is display-only
and moves solely through ``advance_rotation_cursor``.

Rotating schedules anchor day zero to the calendar day of ``created_at``
and index the pattern with floored modulo, so dates before the anchor wrap
around to the end of the pattern instead of failing.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.telemetry import track_operation
from core.wide_event import set_wide_event_nested
from models import DayType, Schedule, ScheduleType, utcnow
from repositories.schedule_repository import ScheduleRepository
from repositories.user_repository import UserRepository
from schemas import WEEKDAY_NAMES, DayTypeResult
from services.users_service import UserNotFoundError

logger = get_logger(__name__)

REST_TOKEN = "rest"
ROTATION_TOKENS = frozenset({"upper", "lower", "rest", "cardio", "strength", "workout"})


class ScheduleValidationError(Exception):
    """Raised when a schedule cannot be created as requested."""

    pass


class InvalidRotationTokenError(ScheduleValidationError):
    """Raised when a rotation pattern contains a token outside the vocabulary."""

    def __init__(self, token: str, position: int):
        self.token = token
        self.position = position
        allowed = ", ".join(sorted(ROTATION_TOKENS))
        super().__init__(
            f"Invalid rotation token {token!r} at position {position}. "
            f"Allowed tokens: {allowed}"
        )


class ScheduleNotFoundError(Exception):
    """Raised when a user has no schedule."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No schedule for user {user_id}")


# =============================================================================
# Pure resolution
# =============================================================================


def weekday_index(on_date: date) -> int:
    """Weekday numbered Sunday=0 ... Saturday=6."""
    return (on_date.weekday() + 1) % 7


def _anchor_date(schedule: Schedule) -> date:
    created_at = schedule.created_at
    if isinstance(created_at, datetime):
        return created_at.date()
    return created_at


def rotation_index(schedule: Schedule, on_date: date) -> int | None:
    """Position in the rotation pattern for on_date, or None if not rotating.

    Python's % is floored, so the result is always in [0, len(pattern)).
    """
    if schedule.schedule_type != ScheduleType.ROTATING:
        return None
    pattern = schedule.rotation_tokens
    if not pattern:
        return None
    days_since_start = (on_date - _anchor_date(schedule)).days
    return days_since_start % len(pattern)


def resolve_day_type(schedule: Schedule | None, on_date: date) -> DayType:
    """Classify on_date as Workout, Rest or Unscheduled for a schedule.

    A missing or inactive schedule is Unscheduled, as is a custom one.
    """
    if schedule is None or not schedule.is_active:
        return DayType.UNSCHEDULED

    match schedule.schedule_type:
        case ScheduleType.WEEKLY:
            is_workout = schedule.weekday_flags[weekday_index(on_date)]
            return DayType.WORKOUT if is_workout else DayType.REST
        case ScheduleType.ROTATING:
            index = rotation_index(schedule, on_date)
            if index is None:
                return DayType.UNSCHEDULED
            token = schedule.rotation_tokens[index]
            return DayType.REST if token == REST_TOKEN else DayType.WORKOUT
        case _:
            return DayType.UNSCHEDULED


def parse_rotation_pattern(raw: str | Iterable[str]) -> list[str]:
    """Normalize a rotation pattern and check every token.

    Accepts ``"upper, Lower,rest"`` or ``["upper", "lower", "rest"]``.

    Raises:
        ScheduleValidationError: The pattern is empty.
        InvalidRotationTokenError: A token is blank or not in ROTATION_TOKENS.
    """
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    tokens = [part.strip().lower() for part in parts]
    if not tokens or tokens == [""]:
        raise ScheduleValidationError("Rotation pattern must contain at least one token")

    for position, token in enumerate(tokens):
        if token not in ROTATION_TOKENS:
            raise InvalidRotationTokenError(token, position)
    return tokens


# =============================================================================
# Persistence-backed operations
# =============================================================================


async def get_schedule(db: AsyncSession, user_id: str) -> Schedule:
    """Get the user's schedule.

    Raises:
        ScheduleNotFoundError: The user has no schedule.
    """
    schedule = await ScheduleRepository(db).get_by_user(user_id)
    if schedule is None:
        raise ScheduleNotFoundError(user_id)
    return schedule


async def get_day_type(db: AsyncSession, user_id: str, on_date: date) -> DayTypeResult:
    """Resolve the day type for a user. A missing schedule is Unscheduled."""
    if not await UserRepository(db).exists(user_id):
        raise UserNotFoundError(user_id)

    schedule = await ScheduleRepository(db).get_by_user(user_id)
    day_type = resolve_day_type(schedule, on_date)

    index = None
    token = None
    if schedule is not None and schedule.is_active:
        index = rotation_index(schedule, on_date)
        if index is not None:
            token = schedule.rotation_tokens[index]

    return DayTypeResult(
        user_id=user_id,
        date=on_date,
        day_type=day_type,
        rotation_index=index,
        rotation_token=token,
    )


@track_operation("schedule_upsert")
async def upsert_flexible_schedule(
    db: AsyncSession,
    user_id: str,
    *,
    schedule_type: ScheduleType,
    rotation_pattern: str | Iterable[str] | None = None,
    weekdays: Mapping[str, bool] | None = None,
    rest_days_allowed: int = 0,
    workout_time: str | None = None,
) -> Schedule:
    """Create or replace a user's schedule.

    The rotation cursor is reset for every schedule type, so switching away
    from a rotation leaves no stale cursor behind. Rotating schedules are also
    re-anchored to now, so the first token applies to the day the schedule
    is (re)created.

    Raises:
        UserNotFoundError: The user does not exist.
        ScheduleValidationError: Weekly schedule without workout days, or
            a bad rotation pattern (InvalidRotationTokenError).
    """
    if not await UserRepository(db).exists(user_id):
        raise UserNotFoundError(user_id)

    flags = {name: bool((weekdays or {}).get(name, False)) for name in WEEKDAY_NAMES}
    values: dict = {
        "schedule_type": schedule_type,
        "rest_days_allowed": rest_days_allowed,
        "workout_time": workout_time,
        "is_active": True,
        "current_rotation_day": 0,
        "rotation_advanced_on": None,
        **flags,
    }

    match schedule_type:
        case ScheduleType.WEEKLY:
            if not any(flags.values()):
                raise ScheduleValidationError(
                    "Weekly schedules need at least one workout day"
                )
            values["rotation_pattern"] = None
        case ScheduleType.ROTATING:
            if rotation_pattern is None:
                raise ScheduleValidationError(
                    "rotation_pattern is required for rotating schedules"
                )
            tokens = parse_rotation_pattern(rotation_pattern)
            values["rotation_pattern"] = ",".join(tokens)
            values["created_at"] = utcnow()
        case ScheduleType.CUSTOM:
            values["rotation_pattern"] = None

    schedule = await ScheduleRepository(db).upsert(user_id, values)

    set_wide_event_nested(
        "schedule",
        type=schedule_type.value,
        pattern_length=len(schedule.rotation_tokens),
    )
    logger.info(
        "schedule.upserted",
        user_id=user_id,
        schedule_type=schedule_type.value,
        rotation_pattern=schedule.rotation_pattern,
    )
    return schedule


async def upsert_weekly_schedule(
    db: AsyncSession,
    user_id: str,
    days_of_week: Iterable[str],
    workout_time: str | None = None,
) -> Schedule:
    """Create or replace a weekly schedule from day names."""
    selected = {day.strip().lower() for day in days_of_week}
    unknown = selected - set(WEEKDAY_NAMES)
    if unknown:
        raise ScheduleValidationError(
            f"Unknown day(s) of week: {', '.join(sorted(unknown))}"
        )
    return await upsert_flexible_schedule(
        db,
        user_id,
        schedule_type=ScheduleType.WEEKLY,
        weekdays={name: name in selected for name in WEEKDAY_NAMES},
        workout_time=workout_time,
    )


async def advance_rotation_cursor(
    db: AsyncSession, user_id: str, on_date: date
) -> Schedule:
    """Move the display cursor to on_date's rotation position.

    Safe to call any number of times per day: the cursor is derived from
    the date, and a second call for the same date writes nothing. Weekly,
    custom and inactive schedules are returned unchanged.

    Raises:
        ScheduleNotFoundError: The user has no schedule.
    """
    repo = ScheduleRepository(db)
    schedule = await repo.get_by_user(user_id)
    if schedule is None:
        raise ScheduleNotFoundError(user_id)

    if not schedule.is_active or schedule.rotation_advanced_on == on_date:
        return schedule

    index = rotation_index(schedule, on_date)
    if index is None:
        return schedule

    schedule.current_rotation_day = index
    schedule.rotation_advanced_on = on_date
    await repo.save(schedule)

    logger.info(
        "schedule.rotation_advanced",
        user_id=user_id,
        on_date=on_date.isoformat(),
        current_rotation_day=index,
    )
    return schedule


async def deactivate_schedule(db: AsyncSession, user_id: str) -> Schedule:
    """Pause a schedule; every day resolves Unscheduled until re-created."""
    repo = ScheduleRepository(db)
    schedule = await get_schedule(db, user_id)
    schedule.is_active = False
    await repo.save(schedule)
    logger.info("schedule.deactivated", user_id=user_id)
    return schedule
