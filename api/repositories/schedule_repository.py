"""Schedule repository for database operations."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Schedule
from repositories.utils import log_slow_query, upsert_on_conflict

# Columns a schedule write may replace; user_id and id are immutable
_UPSERT_FIELDS = [
    "schedule_type",
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "rotation_pattern",
    "current_rotation_day",
    "rotation_advanced_on",
    "rest_days_allowed",
    "is_active",
    "workout_time",
    "created_at",
]


class ScheduleRepository:
    """Repository for the one-per-user Schedule row."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @log_slow_query("schedules.get_by_user")
    async def get_by_user(self, user_id: str) -> Schedule | None:
        result = await self.db.execute(
            select(Schedule).where(Schedule.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @log_slow_query("schedules.upsert")
    async def upsert(self, user_id: str, values: dict[str, Any]) -> Schedule:
        """Create or replace the user's schedule.

        Relies on the unique constraint on user_id so concurrent writes for
        the same user cannot produce two schedules.
        """
        now = datetime.now(UTC)
        row = {"user_id": user_id, "created_at": now, "updated_at": now, **values}
        # created_at only changes on conflict when the caller re-anchors it
        update_fields = [field for field in _UPSERT_FIELDS if field in values]
        update_fields.append("updated_at")
        return await upsert_on_conflict(
            self.db,
            Schedule,
            row,
            index_elements=["user_id"],
            update_fields=update_fields,
        )

    async def save(self, schedule: Schedule) -> Schedule:
        """Flush in-place changes to a loaded schedule."""
        schedule.updated_at = datetime.now(UTC)
        await self.db.flush()
        return schedule
