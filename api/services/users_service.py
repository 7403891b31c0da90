"""User service for user-related business logic."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.telemetry import log_business_event
from models import User
from repositories.user_repository import UserRepository
from schemas import UserResponse

logger = get_logger(__name__)


class UserNotFoundError(Exception):
    """Raised when an operation names a user that does not exist."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class DiscordIdTakenError(Exception):
    """Raised when a discord_id is already linked to a different user."""

    def __init__(self, user_id: str, discord_id: str | None):
        self.user_id = user_id
        self.discord_id = discord_id
        super().__init__(
            f"Discord id {discord_id} is already linked to another user"
        )


def _to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        discord_id=user.discord_id,
        avatar_url=user.avatar_url,
        current_streak=user.current_streak or 0,
        longest_streak=user.longest_streak or 0,
        total_checkins=user.total_checkins or 0,
        created_at=user.created_at,
    )


async def get_user(db: AsyncSession, user_id: str) -> UserResponse:
    """Get a user with the stored streak aggregate.

    Raises:
        UserNotFoundError: No such user.
    """
    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return _to_user_response(user)


async def ensure_user_exists(db: AsyncSession, user_id: str) -> None:
    """Raise UserNotFoundError unless the user row exists."""
    if not await UserRepository(db).exists(user_id):
        raise UserNotFoundError(user_id)


async def register_user(
    db: AsyncSession,
    user_id: str,
    *,
    username: str,
    discord_id: str | None = None,
    avatar_url: str | None = None,
) -> UserResponse:
    """Create a user or update their profile fields. Streak fields are kept.

    Raises:
        DiscordIdTakenError: discord_id belongs to a different user.
    """
    # Conflicts on id are resolved by the upsert; the only remaining unique
    # constraint is discord_id.
    try:
        async with db.begin_nested():
            user = await UserRepository(db).upsert(
                user_id,
                username=username.strip(),
                discord_id=discord_id,
                avatar_url=avatar_url,
            )
    except IntegrityError:
        logger.info("user.discord_id_taken", user_id=user_id, discord_id=discord_id)
        raise DiscordIdTakenError(user_id, discord_id) from None

    if user.created_at == user.updated_at:
        log_business_event("users.registered", 1)

    logger.info("user.upserted", user_id=user_id)
    return _to_user_response(user)
