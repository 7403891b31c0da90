"""Tests for schedule_service.

Tests cover:
- resolve_day_type for weekly, rotating, custom, inactive and missing schedules
- Floored-modulo rotation indexing for dates before the anchor
- parse_rotation_pattern normalization and token validation
- upsert_flexible_schedule / upsert_weekly_schedule validation and repo calls
- advance_rotation_cursor idempotence
- get_day_type / get_schedule not-found handling
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from models import DayType, ScheduleType
from services.schedule_service import (
    InvalidRotationTokenError,
    ScheduleNotFoundError,
    ScheduleValidationError,
    advance_rotation_cursor,
    deactivate_schedule,
    get_day_type,
    get_schedule,
    parse_rotation_pattern,
    resolve_day_type,
    rotation_index,
    upsert_flexible_schedule,
    upsert_weekly_schedule,
    weekday_index,
)
from services.users_service import UserNotFoundError
from tests.factories import RotatingScheduleFactory, WeeklyScheduleFactory, anchored_at

# 2026-01-04 is a Sunday
SUNDAY = date(2026, 1, 4)
MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)


# =============================================================================
# Pure resolution
# =============================================================================


@pytest.mark.unit
class TestWeekdayIndex:
    def test_sunday_is_zero(self):
        assert weekday_index(SUNDAY) == 0

    def test_saturday_is_six(self):
        assert weekday_index(SUNDAY + timedelta(days=6)) == 6


@pytest.mark.unit
class TestResolveDayType:
    def test_no_schedule_is_unscheduled(self):
        assert resolve_day_type(None, MONDAY) == DayType.UNSCHEDULED

    def test_inactive_schedule_is_unscheduled(self):
        schedule = WeeklyScheduleFactory.build(is_active=False)
        assert resolve_day_type(schedule, MONDAY) == DayType.UNSCHEDULED

    def test_weekly_flag_true_is_workout(self):
        schedule = WeeklyScheduleFactory.build()
        assert resolve_day_type(schedule, MONDAY) == DayType.WORKOUT

    def test_weekly_flag_false_is_rest(self):
        schedule = WeeklyScheduleFactory.build()
        assert resolve_day_type(schedule, TUESDAY) == DayType.REST

    def test_weekly_sunday_flag_is_read(self):
        schedule = WeeklyScheduleFactory.build(sunday=True)
        assert resolve_day_type(schedule, SUNDAY) == DayType.WORKOUT

    def test_custom_is_unscheduled(self):
        schedule = WeeklyScheduleFactory.build(schedule_type=ScheduleType.CUSTOM)
        assert resolve_day_type(schedule, MONDAY) == DayType.UNSCHEDULED

    def test_rotating_first_three_days(self):
        """upper,lower,rest resolves Workout, Workout, Rest from its anchor."""
        schedule = RotatingScheduleFactory.build(
            rotation_pattern="upper,lower,rest", created_at=anchored_at(MONDAY)
        )

        resolved = [
            resolve_day_type(schedule, MONDAY + timedelta(days=i)) for i in range(3)
        ]

        assert resolved == [DayType.WORKOUT, DayType.WORKOUT, DayType.REST]

    def test_rotating_day_before_anchor_is_last_token(self):
        schedule = RotatingScheduleFactory.build(
            rotation_pattern="upper,lower,rest", created_at=anchored_at(MONDAY)
        )

        assert rotation_index(schedule, MONDAY - timedelta(days=1)) == 2
        assert resolve_day_type(schedule, MONDAY - timedelta(days=1)) == DayType.REST

    def test_rotating_far_before_anchor_stays_in_range(self):
        schedule = RotatingScheduleFactory.build(
            rotation_pattern="upper,rest", created_at=anchored_at(MONDAY)
        )

        index = rotation_index(schedule, MONDAY - timedelta(days=1001))

        assert index == 1

    def test_rotating_tokens_are_trimmed_and_lowercased(self):
        schedule = RotatingScheduleFactory.build(
            rotation_pattern=" Upper , REST ", created_at=anchored_at(MONDAY)
        )

        assert resolve_day_type(schedule, MONDAY) == DayType.WORKOUT
        assert resolve_day_type(schedule, TUESDAY) == DayType.REST

    def test_rotating_without_pattern_is_unscheduled(self):
        schedule = RotatingScheduleFactory.build(rotation_pattern=None)
        assert resolve_day_type(schedule, MONDAY) == DayType.UNSCHEDULED

    def test_anchor_uses_calendar_day_not_elapsed_hours(self):
        """A schedule created late in the day still anchors to that day."""
        schedule = RotatingScheduleFactory.build(
            rotation_pattern="upper,rest",
            created_at=anchored_at(MONDAY).replace(hour=23, minute=59),
        )

        assert rotation_index(schedule, TUESDAY) == 1

    def test_resolution_does_not_touch_cursor(self):
        schedule = RotatingScheduleFactory.build(
            created_at=anchored_at(MONDAY), current_rotation_day=0
        )

        first = resolve_day_type(schedule, MONDAY + timedelta(days=2))
        second = resolve_day_type(schedule, MONDAY + timedelta(days=2))

        assert first == second == DayType.REST
        assert schedule.current_rotation_day == 0
        assert schedule.rotation_advanced_on is None

    def test_weekly_schedule_has_no_rotation_index(self):
        schedule = WeeklyScheduleFactory.build()
        assert rotation_index(schedule, MONDAY) is None


@pytest.mark.unit
class TestParseRotationPattern:
    def test_normalizes_string(self):
        assert parse_rotation_pattern("Upper, lower ,REST") == ["upper", "lower", "rest"]

    def test_accepts_list(self):
        assert parse_rotation_pattern(["cardio", "rest"]) == ["cardio", "rest"]

    def test_empty_string_rejected(self):
        with pytest.raises(ScheduleValidationError):
            parse_rotation_pattern("")

    def test_empty_list_rejected(self):
        with pytest.raises(ScheduleValidationError):
            parse_rotation_pattern([])

    def test_unknown_token_names_token_and_position(self):
        with pytest.raises(InvalidRotationTokenError) as exc_info:
            parse_rotation_pattern("upper,legday,rest")

        assert exc_info.value.token == "legday"
        assert exc_info.value.position == 1

    def test_blank_token_rejected(self):
        with pytest.raises(InvalidRotationTokenError) as exc_info:
            parse_rotation_pattern("upper,,rest")

        assert exc_info.value.token == ""

    def test_invalid_token_is_a_validation_error(self):
        with pytest.raises(ScheduleValidationError):
            parse_rotation_pattern("nap")


# =============================================================================
# Persistence-backed operations (mocked repositories)
# =============================================================================


@pytest.mark.unit
class TestUpsertFlexibleSchedule:
    async def test_unknown_user_raises(self):
        mock_db = AsyncMock()
        with patch(
            "services.schedule_service.UserRepository", autospec=True
        ) as mock_user_repo_class:
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=False)

            with pytest.raises(UserNotFoundError) as exc_info:
                await upsert_flexible_schedule(
                    mock_db, "ghost", schedule_type=ScheduleType.CUSTOM
                )

        assert exc_info.value.user_id == "ghost"

    async def test_rotating_normalizes_pattern_and_resets_cursor(self):
        mock_db = AsyncMock()
        stored = RotatingScheduleFactory.build(user_id="u1")

        with (
            patch(
                "services.schedule_service.UserRepository", autospec=True
            ) as mock_user_repo_class,
            patch(
                "services.schedule_service.ScheduleRepository", autospec=True
            ) as mock_schedule_repo_class,
        ):
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=True)
            mock_upsert = AsyncMock(return_value=stored)
            mock_schedule_repo_class.return_value.upsert = mock_upsert

            result = await upsert_flexible_schedule(
                mock_db,
                "u1",
                schedule_type=ScheduleType.ROTATING,
                rotation_pattern="Upper, Lower, rest",
            )

        assert result is stored
        user_id, values = mock_upsert.await_args.args
        assert user_id == "u1"
        assert values["rotation_pattern"] == "upper,lower,rest"
        assert values["current_rotation_day"] == 0
        assert values["rotation_advanced_on"] is None
        assert "created_at" in values
        # Service does NOT commit; the route's session dependency does
        mock_db.commit.assert_not_awaited()

    async def test_rotating_invalid_token_never_reaches_repo(self):
        mock_db = AsyncMock()

        with (
            patch(
                "services.schedule_service.UserRepository", autospec=True
            ) as mock_user_repo_class,
            patch(
                "services.schedule_service.ScheduleRepository", autospec=True
            ) as mock_schedule_repo_class,
        ):
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=True)
            mock_schedule_repo_class.return_value.upsert = AsyncMock()

            with pytest.raises(InvalidRotationTokenError):
                await upsert_flexible_schedule(
                    mock_db,
                    "u1",
                    schedule_type=ScheduleType.ROTATING,
                    rotation_pattern="upper,siesta",
                )

            mock_schedule_repo_class.return_value.upsert.assert_not_awaited()

    async def test_rotating_requires_pattern(self):
        mock_db = AsyncMock()
        with patch(
            "services.schedule_service.UserRepository", autospec=True
        ) as mock_user_repo_class:
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=True)

            with pytest.raises(ScheduleValidationError):
                await upsert_flexible_schedule(
                    mock_db, "u1", schedule_type=ScheduleType.ROTATING
                )

    async def test_weekly_requires_a_workout_day(self):
        mock_db = AsyncMock()
        with patch(
            "services.schedule_service.UserRepository", autospec=True
        ) as mock_user_repo_class:
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=True)

            with pytest.raises(ScheduleValidationError, match="at least one"):
                await upsert_flexible_schedule(
                    mock_db,
                    "u1",
                    schedule_type=ScheduleType.WEEKLY,
                    weekdays={"monday": False},
                )

    async def test_weekly_does_not_reanchor(self):
        mock_db = AsyncMock()
        stored = WeeklyScheduleFactory.build(user_id="u1")

        with (
            patch(
                "services.schedule_service.UserRepository", autospec=True
            ) as mock_user_repo_class,
            patch(
                "services.schedule_service.ScheduleRepository", autospec=True
            ) as mock_schedule_repo_class,
        ):
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=True)
            mock_upsert = AsyncMock(return_value=stored)
            mock_schedule_repo_class.return_value.upsert = mock_upsert

            await upsert_flexible_schedule(
                mock_db,
                "u1",
                schedule_type=ScheduleType.WEEKLY,
                weekdays={"monday": True, "thursday": True},
                workout_time="07:00",
            )

        _, values = mock_upsert.await_args.args
        assert values["monday"] is True
        assert values["thursday"] is True
        assert values["sunday"] is False
        assert values["rotation_pattern"] is None
        assert "created_at" not in values
        assert values["workout_time"] == "07:00"
        assert values["current_rotation_day"] == 0
        assert values["rotation_advanced_on"] is None

    async def test_custom_clears_rotation_cursor(self):
        stored = WeeklyScheduleFactory.build(user_id="u1")

        with (
            patch(
                "services.schedule_service.UserRepository", autospec=True
            ) as mock_user_repo_class,
            patch(
                "services.schedule_service.ScheduleRepository", autospec=True
            ) as mock_schedule_repo_class,
        ):
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=True)
            mock_upsert = AsyncMock(return_value=stored)
            mock_schedule_repo_class.return_value.upsert = mock_upsert

            await upsert_flexible_schedule(
                AsyncMock(), "u1", schedule_type=ScheduleType.CUSTOM
            )

        _, values = mock_upsert.await_args.args
        assert values["rotation_pattern"] is None
        assert values["current_rotation_day"] == 0
        assert values["rotation_advanced_on"] is None
        assert "created_at" not in values


@pytest.mark.unit
class TestUpsertWeeklySchedule:
    async def test_day_names_become_flags(self):
        mock_db = AsyncMock()

        with patch(
            "services.schedule_service.upsert_flexible_schedule", new_callable=AsyncMock
        ) as mock_upsert:
            await upsert_weekly_schedule(
                mock_db, "u1", ["Monday", " friday "], workout_time="18:30"
            )

        kwargs = mock_upsert.await_args.kwargs
        assert kwargs["schedule_type"] == ScheduleType.WEEKLY
        assert kwargs["weekdays"]["monday"] is True
        assert kwargs["weekdays"]["friday"] is True
        assert kwargs["weekdays"]["tuesday"] is False
        assert kwargs["workout_time"] == "18:30"

    async def test_unknown_day_rejected(self):
        with pytest.raises(ScheduleValidationError, match="funday"):
            await upsert_weekly_schedule(AsyncMock(), "u1", ["monday", "funday"])


@pytest.mark.unit
class TestAdvanceRotationCursor:
    async def test_missing_schedule_raises(self):
        with patch(
            "services.schedule_service.ScheduleRepository", autospec=True
        ) as mock_repo_class:
            mock_repo_class.return_value.get_by_user = AsyncMock(return_value=None)

            with pytest.raises(ScheduleNotFoundError):
                await advance_rotation_cursor(AsyncMock(), "u1", MONDAY)

    async def test_sets_cursor_from_date(self):
        schedule = RotatingScheduleFactory.build(
            user_id="u1",
            rotation_pattern="upper,lower,rest",
            created_at=anchored_at(MONDAY),
        )

        with patch(
            "services.schedule_service.ScheduleRepository", autospec=True
        ) as mock_repo_class:
            mock_repo = mock_repo_class.return_value
            mock_repo.get_by_user = AsyncMock(return_value=schedule)
            mock_repo.save = AsyncMock(return_value=schedule)

            result = await advance_rotation_cursor(
                AsyncMock(), "u1", MONDAY + timedelta(days=4)
            )

        assert result.current_rotation_day == 1
        assert result.rotation_advanced_on == MONDAY + timedelta(days=4)
        mock_repo.save.assert_awaited_once_with(schedule)

    async def test_second_call_same_day_writes_nothing(self):
        schedule = RotatingScheduleFactory.build(
            user_id="u1",
            created_at=anchored_at(MONDAY),
            current_rotation_day=2,
            rotation_advanced_on=MONDAY + timedelta(days=2),
        )

        with patch(
            "services.schedule_service.ScheduleRepository", autospec=True
        ) as mock_repo_class:
            mock_repo = mock_repo_class.return_value
            mock_repo.get_by_user = AsyncMock(return_value=schedule)
            mock_repo.save = AsyncMock()

            result = await advance_rotation_cursor(
                AsyncMock(), "u1", MONDAY + timedelta(days=2)
            )

        assert result.current_rotation_day == 2
        mock_repo.save.assert_not_awaited()

    async def test_weekly_schedule_unchanged(self):
        schedule = WeeklyScheduleFactory.build(user_id="u1")

        with patch(
            "services.schedule_service.ScheduleRepository", autospec=True
        ) as mock_repo_class:
            mock_repo = mock_repo_class.return_value
            mock_repo.get_by_user = AsyncMock(return_value=schedule)
            mock_repo.save = AsyncMock()

            await advance_rotation_cursor(AsyncMock(), "u1", MONDAY)

        mock_repo.save.assert_not_awaited()
        assert schedule.rotation_advanced_on is None


@pytest.mark.unit
class TestScheduleReads:
    async def test_get_schedule_missing_raises(self):
        with patch(
            "services.schedule_service.ScheduleRepository", autospec=True
        ) as mock_repo_class:
            mock_repo_class.return_value.get_by_user = AsyncMock(return_value=None)

            with pytest.raises(ScheduleNotFoundError) as exc_info:
                await get_schedule(AsyncMock(), "u1")

        assert exc_info.value.user_id == "u1"

    async def test_get_day_type_without_schedule_is_unscheduled(self):
        with (
            patch(
                "services.schedule_service.UserRepository", autospec=True
            ) as mock_user_repo_class,
            patch(
                "services.schedule_service.ScheduleRepository", autospec=True
            ) as mock_schedule_repo_class,
        ):
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=True)
            mock_schedule_repo_class.return_value.get_by_user = AsyncMock(
                return_value=None
            )

            result = await get_day_type(AsyncMock(), "u1", MONDAY)

        assert result.day_type == DayType.UNSCHEDULED
        assert result.rotation_index is None
        assert result.rotation_token is None

    async def test_get_day_type_reports_rotation_token(self):
        schedule = RotatingScheduleFactory.build(
            user_id="u1",
            rotation_pattern="upper,lower,rest",
            created_at=anchored_at(MONDAY),
        )

        with (
            patch(
                "services.schedule_service.UserRepository", autospec=True
            ) as mock_user_repo_class,
            patch(
                "services.schedule_service.ScheduleRepository", autospec=True
            ) as mock_schedule_repo_class,
        ):
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=True)
            mock_schedule_repo_class.return_value.get_by_user = AsyncMock(
                return_value=schedule
            )

            result = await get_day_type(AsyncMock(), "u1", MONDAY + timedelta(days=1))

        assert result.day_type == DayType.WORKOUT
        assert result.rotation_index == 1
        assert result.rotation_token == "lower"

    async def test_get_day_type_unknown_user_raises(self):
        with patch(
            "services.schedule_service.UserRepository", autospec=True
        ) as mock_user_repo_class:
            mock_user_repo_class.return_value.exists = AsyncMock(return_value=False)

            with pytest.raises(UserNotFoundError):
                await get_day_type(AsyncMock(), "ghost", MONDAY)

    async def test_deactivate_marks_inactive(self):
        schedule = WeeklyScheduleFactory.build(user_id="u1")

        with patch(
            "services.schedule_service.ScheduleRepository", autospec=True
        ) as mock_repo_class:
            mock_repo = mock_repo_class.return_value
            mock_repo.get_by_user = AsyncMock(return_value=schedule)
            mock_repo.save = AsyncMock(return_value=schedule)

            result = await deactivate_schedule(AsyncMock(), "u1")

        assert result.is_active is False
        assert resolve_day_type(result, MONDAY) == DayType.UNSCHEDULED
