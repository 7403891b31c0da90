"""Pydantic schemas for API request/response validation and service results."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models import CheckInStatus, DayType, ScheduleType

WEEKDAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)


# =============================================================================
# Users
# =============================================================================


class UserUpsertRequest(BaseModel):
    """Register or update a user (sent by the bot or the web app)."""

    username: str = Field(min_length=1, max_length=255)
    discord_id: str | None = Field(default=None, max_length=64)
    avatar_url: str | None = None


class UserResponse(BaseModel):
    """User with the stored streak aggregate."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    discord_id: str | None = None
    avatar_url: str | None = None
    current_streak: int = 0
    longest_streak: int = 0
    total_checkins: int = 0
    created_at: datetime


# =============================================================================
# Streaks
# =============================================================================


class StreakData(BaseModel):
    """Streak for one user as of one day. Also the streak response body."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    as_of: date
    current_streak: int
    longest_streak: int
    total_checkins: int
    day_type: DayType
    last_checkin_date: date | None = None


# =============================================================================
# Check-ins
# =============================================================================


class CheckInCreateRequest(BaseModel):
    """Log a day. ``date`` defaults to today (UTC)."""

    user_id: str = Field(min_length=1, max_length=255)
    checkin_date: date | None = Field(default=None, alias="date")
    status: CheckInStatus
    workout_type: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=1000)
    photo_url: str | None = None
    discord_message_id: str | None = Field(default=None, max_length=64)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("workout_type")
    @classmethod
    def normalize_workout_type(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else None


class CheckInResponse(BaseModel):
    """A persisted check-in."""

    id: int
    user_id: str
    date: date
    status: CheckInStatus
    workout_type: str | None = None
    notes: str | None = None
    photo_url: str | None = None
    discord_message_id: str | None = None
    created_at: datetime


class CheckInResult(BaseModel):
    """Result of logging a check-in: the row plus the refreshed streak."""

    checkin: CheckInResponse
    streak: StreakData


# =============================================================================
# Schedules
# =============================================================================


class WeeklyScheduleRequest(BaseModel):
    """Weekly schedule given as day names, e.g. ``["monday", "thursday"]``."""

    user_id: str = Field(min_length=1, max_length=255)
    days_of_week: list[str] = Field(min_length=1, max_length=7)
    time: str | None = Field(default=None, max_length=16)

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v: list[str]) -> list[str]:
        days = [d.strip().lower() for d in v]
        unknown = [d for d in days if d not in WEEKDAY_NAMES]
        if unknown:
            raise ValueError(f"Unknown day(s) of week: {', '.join(unknown)}")
        return days


class FlexibleScheduleRequest(BaseModel):
    """Weekly flags, a rotating pattern, or a custom schedule.

    ``rotation_pattern`` is a comma-separated token string; tokens are
    validated by the schedule service so the error names the bad token.
    """

    user_id: str = Field(min_length=1, max_length=255)
    schedule_type: ScheduleType
    rotation_pattern: str | None = None
    sunday: bool = False
    monday: bool = False
    tuesday: bool = False
    wednesday: bool = False
    thursday: bool = False
    friday: bool = False
    saturday: bool = False
    rest_days_allowed: int = Field(default=0, ge=0, le=7)
    workout_time: str | None = Field(default=None, max_length=16)

    @model_validator(mode="after")
    def require_pattern_for_rotation(self) -> "FlexibleScheduleRequest":
        if self.schedule_type == ScheduleType.ROTATING and not self.rotation_pattern:
            raise ValueError("rotation_pattern is required for rotating schedules")
        return self

    @property
    def weekday_flags(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in WEEKDAY_NAMES}


class ScheduleResponse(BaseModel):
    """A user's schedule."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    schedule_type: ScheduleType
    sunday: bool
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    rotation_pattern: str | None = None
    current_rotation_day: int
    rotation_advanced_on: date | None = None
    rest_days_allowed: int
    is_active: bool
    workout_time: str | None = None
    created_at: datetime
    updated_at: datetime


class DayTypeResult(BaseModel):
    """Resolved day type for one user and date."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    date: date
    day_type: DayType
    rotation_index: int | None = None
    rotation_token: str | None = None


# =============================================================================
# Health
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class PoolStatusResponse(BaseModel):
    """Connection pool status."""

    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DetailedHealthResponse(BaseModel):
    """Detailed health check response with component status."""

    status: str
    service: str
    database: bool
    pool: PoolStatusResponse | None = None
