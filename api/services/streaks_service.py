"""Streak calculation over a user's check-in history.

Pure functions, no DB access. The history is a list of entries sorted by
date, newest first. Two kinds of entry exist:

- ``CheckInEntry``: a persisted check-in.
- ``VirtualRestEntry``: today's scheduled rest day that the user did not
  log. It counts toward streak length but never toward total_checkins and
  is never written anywhere.

Adjacent entries are classified by their gap in whole days: 0 is a
duplicate and ignored, 1 continues a run, more than 1 breaks it. A negative
gap means the history is not sorted and is rejected.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import NamedTuple

from core.logger import get_logger
from models import DayType

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CheckInEntry:
    day: date
    checkin_id: int | None = None


@dataclass(frozen=True, slots=True)
class VirtualRestEntry:
    day: date


HistoryEntry = CheckInEntry | VirtualRestEntry


class StreakCounts(NamedTuple):
    current_streak: int
    longest_streak: int
    total_checkins: int


class MalformedDateOrderingError(Exception):
    """Raised when a history entry is dated after the entry before it."""

    def __init__(self, previous: date, current: date, position: int):
        self.previous = previous
        self.current = current
        self.position = position
        super().__init__(
            f"History not sorted newest first: {current.isoformat()} follows "
            f"{previous.isoformat()} at position {position}"
        )


def days_between(later: date, earlier: date) -> int:
    """Whole days from earlier to later (negative if later is earlier)."""
    return (later - earlier).days


def build_history(
    checkins: Iterable[CheckInEntry],
    day_type: DayType,
    today: date,
) -> list[HistoryEntry]:
    """Sort check-ins newest first and add today's implicit rest day.

    The virtual entry is added only when today resolves to Rest and no
    check-in exists for today.
    """
    history: list[HistoryEntry] = sorted(checkins, key=lambda e: e.day, reverse=True)

    if day_type == DayType.REST and not any(e.day == today for e in history):
        history.append(VirtualRestEntry(today))
        # Stable sort keeps the virtual entry at the head unless the
        # history holds (rejected-at-write) future-dated check-ins
        history.sort(key=lambda e: e.day, reverse=True)

    return history


def _gaps(history: list[HistoryEntry]) -> list[int]:
    """Day gaps between each adjacent pair, validating the ordering."""
    gaps = []
    for i in range(1, len(history)):
        previous, current = history[i - 1].day, history[i].day
        gap = days_between(previous, current)
        if gap < 0:
            logger.error(
                "streak.malformed_ordering",
                previous=previous.isoformat(),
                current=current.isoformat(),
                position=i,
            )
            raise MalformedDateOrderingError(previous, current, i)
        gaps.append(gap)
    return gaps


def calculate_streak(history: list[HistoryEntry], today: date) -> StreakCounts:
    """Calculate current streak, longest streak and total check-ins.

    Args:
        history: Entries sorted by date, newest first (see build_history).
        today: The day the current streak is measured from.

    Returns:
        StreakCounts. The current streak is 0 unless some entry, real or
        virtual, is dated today.

    Raises:
        MalformedDateOrderingError: history is not sorted newest first.
    """
    if not history:
        return StreakCounts(0, 0, 0)

    gaps = _gaps(history)
    total_checkins = sum(1 for e in history if isinstance(e, CheckInEntry))

    # Current streak: walk back from today's entry until the first break
    current_streak = 0
    start = next((i for i, e in enumerate(history) if e.day == today), None)
    if start is not None:
        current_streak = 1
        for gap in gaps[start:]:
            if gap == 0:
                continue
            if gap != 1:
                break
            current_streak += 1

    # Longest streak: independent pass over the whole history
    longest_streak = 1
    run = 1
    for gap in gaps:
        if gap == 0:
            continue
        run = run + 1 if gap == 1 else 1
        longest_streak = max(longest_streak, run)

    return StreakCounts(current_streak, longest_streak, total_checkins)
