"""API route modules."""

from .checkins_routes import router as checkins_router
from .health_routes import router as health_router
from .schedules_routes import router as schedules_router
from .streak_routes import router as streak_router
from .users_routes import router as users_router

__all__ = [
    "checkins_router",
    "health_router",
    "schedules_router",
    "streak_router",
    "users_router",
]
