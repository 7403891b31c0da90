"""Request-scoped context for the canonical ``request.completed`` log line.

RequestTimingMiddleware creates the dict when a request starts and emits it
when the response finishes. Routes and services only add fields:

    from core.wide_event import set_wide_event_fields

    set_wide_event_fields(user_id=user_id, current_streak=streak.current_streak)
    set_wide_event_nested("schedule", type="rotating", pattern_length=3)

Outside a request (CLI, tests) the setters are no-ops.
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any] | None] = ContextVar("wide_event", default=None)


def init_wide_event() -> dict[str, Any]:
    """Start a fresh wide event for the current async context."""
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Return the current wide event, or an empty dict when none is active."""
    return _wide_event.get() or {}


def set_wide_event_field(key: str, value: Any) -> None:
    set_wide_event_fields(**{key: value})


def set_wide_event_fields(**kwargs: Any) -> None:
    """Merge fields into the current wide event."""
    event = _wide_event.get()
    if event is not None:
        event.update(kwargs)


def set_wide_event_nested(category: str, **kwargs: Any) -> None:
    """Merge fields under a nested key, e.g. ``{"checkin": {"status": "went"}}``."""
    event = _wide_event.get()
    if event is None:
        return
    event.setdefault(category, {}).update(kwargs)


def clear_wide_event() -> None:
    _wide_event.set(None)
