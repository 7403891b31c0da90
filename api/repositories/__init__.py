"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping routes thin and
services free of SQL. Services receive an AsyncSession and build the
repositories they need, which keeps them easy to mock in tests.
"""

from repositories.checkin_repository import CheckInRepository
from repositories.schedule_repository import ScheduleRepository
from repositories.user_repository import UserRepository
from repositories.utils import log_slow_query

__all__ = [
    "CheckInRepository",
    "ScheduleRepository",
    "UserRepository",
    "log_slow_query",
]
