"""Repository for check-in operations."""

from collections.abc import Sequence
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import CheckIn, CheckInStatus
from repositories.utils import log_slow_query


class CheckInRepository:
    """Repository for the append-only check-in log."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @log_slow_query("checkins.list_by_user")
    async def list_by_user(self, user_id: str) -> Sequence[CheckIn]:
        """All check-ins for a user, in no guaranteed order.

        Streak computation sorts on its own.
        """
        result = await self.db.execute(
            select(CheckIn).where(CheckIn.user_id == user_id)
        )
        return result.scalars().all()

    @log_slow_query("checkins.list_recent")
    async def list_recent(
        self,
        user_id: str,
        *,
        limit: int | None = None,
    ) -> Sequence[CheckIn]:
        """Check-ins for a user, most recent date first."""
        query = (
            select(CheckIn)
            .where(CheckIn.user_id == user_id)
            .order_by(CheckIn.checkin_date.desc(), CheckIn.id.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return result.scalars().all()

    @log_slow_query("checkins.create")
    async def create(
        self,
        user_id: str,
        checkin_date: date,
        status: CheckInStatus,
        *,
        workout_type: str | None = None,
        notes: str | None = None,
        photo_url: str | None = None,
        discord_message_id: str | None = None,
    ) -> CheckIn:
        """Insert a check-in.

        Raises IntegrityError when the user already has a check-in on
        checkin_date (uq_checkins_user_date). No existence pre-check is made.
        """
        checkin = CheckIn(
            user_id=user_id,
            checkin_date=checkin_date,
            status=status,
            workout_type=workout_type,
            notes=notes,
            photo_url=photo_url,
            discord_message_id=discord_message_id,
        )
        self.db.add(checkin)
        await self.db.flush()
        return checkin
