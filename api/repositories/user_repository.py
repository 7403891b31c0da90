"""User repository for database operations."""

from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import User
from repositories.utils import log_slow_query, upsert_on_conflict


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("users.get_by_id")
    async def get_by_id(self, user_id: str) -> User | None:
        """Get a user by their ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def exists(self, user_id: str) -> bool:
        result = await self.db.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None

    @log_slow_query("users.lock")
    async def lock(self, user_id: str) -> bool:
        """Take a row lock on the user until the transaction ends.

        Returns False when there is no such user.
        """
        result = await self.db.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )
        return result.scalar_one_or_none() is not None

    @log_slow_query("users.upsert")
    async def upsert(
        self,
        user_id: str,
        *,
        username: str,
        discord_id: str | None = None,
        avatar_url: str | None = None,
    ) -> User:
        """Insert or update a user's profile fields in a single query.

        Streak fields are never touched here.
        """
        now = datetime.now(UTC)
        values = {
            "id": user_id,
            "username": username,
            "discord_id": discord_id,
            "avatar_url": avatar_url,
            "created_at": now,
            "updated_at": now,
        }
        return await upsert_on_conflict(
            self.db,
            User,
            values,
            index_elements=["id"],
            update_fields=["username", "discord_id", "avatar_url", "updated_at"],
        )

    @log_slow_query("users.update_streak_fields")
    async def update_streak_fields(
        self,
        user_id: str,
        *,
        current_streak: int,
        longest_streak: int,
        total_checkins: int,
    ) -> None:
        """Persist the streak aggregate computed for a user."""
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                current_streak=current_streak,
                longest_streak=longest_streak,
                total_checkins=total_checkins,
                updated_at=datetime.now(UTC),
            )
        )
