"""SQLAlchemy models for WaddleTracker check-ins, schedules and streaks."""

from datetime import UTC, date, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def today() -> date:
    """Return current UTC date."""
    return datetime.now(UTC).date()


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns.

    Use this for any model that needs audit timestamps.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


def _enum_column(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda x: [e.value for e in x],
    )


class ScheduleType(str, PyEnum):
    """How a schedule decides which days are workout days."""

    WEEKLY = "weekly"
    ROTATING = "rotating"
    # No resolution rules yet; always resolves to Unscheduled.
    CUSTOM = "custom"


class CheckInStatus(str, PyEnum):
    """Outcome recorded for a calendar day."""

    WENT = "went"
    MISSED = "missed"
    REST = "rest"


class DayType(str, PyEnum):
    """Classification of a calendar date derived from a user's schedule."""

    WORKOUT = "workout"
    REST = "rest"
    UNSCHEDULED = "unscheduled"


class User(TimestampMixin, Base):
    """User model with the persisted streak aggregate."""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("discord_id", name="uq_users_discord_id"),)

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    discord_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Written only from StreakEngine output
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    total_checkins: Mapped[int] = mapped_column(Integer, default=0)

    schedule: Mapped["Schedule | None"] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )
    checkins: Mapped[list["CheckIn"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )


class Schedule(TimestampMixin, Base):
    """A user's workout schedule. One per user.

    Weekly schedules use the seven per-weekday flags. Rotating schedules
    cycle through ``rotation_pattern`` starting on the day ``created_at``
    falls on.
    """

    __tablename__ = "schedules"
    __table_args__ = (UniqueConstraint("user_id", name="uq_schedules_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    schedule_type: Mapped[ScheduleType] = mapped_column(
        _enum_column(ScheduleType, "schedule_type"),
        nullable=False,
        default=ScheduleType.WEEKLY,
    )

    sunday: Mapped[bool] = mapped_column(Boolean, default=False)
    monday: Mapped[bool] = mapped_column(Boolean, default=False)
    tuesday: Mapped[bool] = mapped_column(Boolean, default=False)
    wednesday: Mapped[bool] = mapped_column(Boolean, default=False)
    thursday: Mapped[bool] = mapped_column(Boolean, default=False)
    friday: Mapped[bool] = mapped_column(Boolean, default=False)
    saturday: Mapped[bool] = mapped_column(Boolean, default=False)

    # Comma-separated, lowercase tokens, validated on write
    rotation_pattern: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Display cursor, moved only by advance_rotation_cursor()
    current_rotation_day: Mapped[int] = mapped_column(Integer, default=0)
    rotation_advanced_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    rest_days_allowed: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    workout_time: Mapped[str | None] = mapped_column(String(16), nullable=True)

    user: Mapped["User"] = relationship(back_populates="schedule")

    @property
    def weekday_flags(self) -> tuple[bool, ...]:
        """Workout flags indexed Sunday=0 ... Saturday=6."""
        return (
            bool(self.sunday),
            bool(self.monday),
            bool(self.tuesday),
            bool(self.wednesday),
            bool(self.thursday),
            bool(self.friday),
            bool(self.saturday),
        )

    @property
    def rotation_tokens(self) -> list[str]:
        if not self.rotation_pattern:
            return []
        return [t.strip().lower() for t in self.rotation_pattern.split(",")]


class CheckIn(Base):
    """A logged day. At most one per (user, date)."""

    __tablename__ = "checkins"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_checkins_user_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    checkin_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    status: Mapped[CheckInStatus] = mapped_column(
        _enum_column(CheckInStatus, "checkin_status"),
        nullable=False,
    )
    workout_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    discord_message_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    user: Mapped["User"] = relationship(back_populates="checkins")
