"""Unit tests for Streak System (trainsmart/gamification/streak_system.py)"""
import pytest
from datetime import date, datetime, timezone, timedelta
from zoneinfo import ZoneInfo

from trainsmart.gamification.streak_system import compute_streak, update_streak
from trainsmart.models.user import StreakState


NOW = datetime(2024, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# compute_streak Tests
# ============================================================================

def test_first_workout_starts_streak():
    """No previous workout starts at 1"""
    assert compute_streak(None, 0, NOW) == 1


def test_consecutive_day_increments():
    """Workout the day after the last one extends the streak"""
    yesterday = NOW - timedelta(days=1)
    assert compute_streak(yesterday, 4, NOW) == 5


def test_same_day_keeps_streak():
    """A second workout on the same day does not count twice"""
    earlier_today = NOW.replace(hour=7)
    assert compute_streak(earlier_today, 3, NOW) == 3


def test_same_day_never_returns_zero():
    """Same-day workout with a zero stored streak still reports 1"""
    assert compute_streak(NOW, 0, NOW) == 1


def test_gap_resets_streak():
    """Two or more days without a workout restart the streak"""
    three_days_ago = NOW - timedelta(days=3)
    assert compute_streak(three_days_ago, 10, NOW) == 1


def test_calendar_days_not_24_hours():
    """23:00 yesterday to 01:00 today is one calendar day apart"""
    last = datetime(2024, 1, 9, 23, 0, tzinfo=timezone.utc)
    now = datetime(2024, 1, 10, 1, 0, tzinfo=timezone.utc)
    assert compute_streak(last, 2, now) == 3


def test_calendar_day_uses_now_timezone():
    """Dates are compared in the timezone of the new workout"""
    tz = ZoneInfo("America/New_York")
    # 2024-01-10 02:00 UTC is still 2024-01-09 in New York
    last = datetime(2024, 1, 10, 2, 0, tzinfo=timezone.utc)
    now = datetime(2024, 1, 10, 20, 0, tzinfo=tz)
    assert compute_streak(last, 1, now) == 2


def test_accepts_plain_dates():
    """date objects work as well as datetimes"""
    assert compute_streak(date(2024, 1, 9), 1, date(2024, 1, 10)) == 2


# ============================================================================
# update_streak Tests
# ============================================================================

def test_update_streak_first_workout():
    result = update_streak(StreakState(), NOW)

    assert result.current_streak == 1
    assert result.state.best == 1
    assert result.state.last_workout_date == NOW
    assert result.changed is True
    assert "started" in result.message


def test_update_streak_continues_and_keeps_best():
    state = StreakState(current=5, best=10, last_workout_date=NOW - timedelta(days=1))

    result = update_streak(state, NOW)

    assert result.current_streak == 6
    assert result.state.best == 10
    assert result.old_streak == 5
    assert "continues" in result.message


def test_update_streak_raises_best():
    state = StreakState(current=3, best=3, last_workout_date=NOW - timedelta(days=1))

    result = update_streak(state, NOW)

    assert result.state.best == 4


def test_update_streak_same_day_unchanged():
    state = StreakState(current=3, best=5, last_workout_date=NOW.replace(hour=6))

    result = update_streak(state, NOW)

    assert result.current_streak == 3
    assert result.changed is False
    assert result.message is not None


def test_update_streak_reset_message():
    state = StreakState(current=7, best=7, last_workout_date=NOW - timedelta(days=5))

    result = update_streak(state, NOW)

    assert result.current_streak == 1
    assert result.state.best == 7
    assert "reset" in result.message.lower()


def test_update_streak_does_not_modify_input():
    state = StreakState(current=2, best=2, last_workout_date=NOW - timedelta(days=1))

    update_streak(state, NOW)

    assert state.current == 2
