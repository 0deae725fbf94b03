"""
Workout Streak System

Tracks consecutive-day workout completion.

Logic:
- First workout ever: streak starts at 1
- Workout on the same calendar day as the last one: unchanged
- Workout the day after the last one: streak + 1
- Gap of 2+ days: streak restarts at 1

Best streak is kept as a high-water mark.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union
import logging

from trainsmart.models.user import StreakState

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


def _calendar_day(value: DateLike, reference: DateLike) -> date:
    """Calendar date of value, seen from reference's timezone when both are aware"""
    if isinstance(value, datetime):
        if (
            isinstance(reference, datetime)
            and reference.tzinfo is not None
            and value.tzinfo is not None
        ):
            value = value.astimezone(reference.tzinfo)
        return value.date()
    return value


def compute_streak(
    last_workout_date: Optional[DateLike],
    current_streak: int,
    now: DateLike
) -> int:
    """
    Compute the streak after a workout logged at `now`.

    Args:
        last_workout_date: Date of the previous workout (None if first ever)
        current_streak: Streak count before this workout
        now: When the new workout happened

    Returns:
        New streak count (always >= 1)
    """
    if last_workout_date is None:
        return 1

    today = _calendar_day(now, now)
    last_day = _calendar_day(last_workout_date, now)

    if last_day == today:
        return max(current_streak, 1)

    if last_day == today - timedelta(days=1):
        return current_streak + 1

    return 1


@dataclass
class StreakUpdate:
    """Result of applying a workout to a streak"""
    state: StreakState
    old_streak: int
    changed: bool
    message: str

    @property
    def current_streak(self) -> int:
        return self.state.current


def update_streak(state: StreakState, now: datetime) -> StreakUpdate:
    """
    Apply a workout logged at `now` to a streak state.

    Returns:
        StreakUpdate with the new state; the input state is not modified
    """
    old_current = state.current
    new_current = compute_streak(state.last_workout_date, old_current, now)

    if state.last_workout_date is None:
        message = "Streak started! Day 1 🎉"
    elif (
        _calendar_day(state.last_workout_date, now) == _calendar_day(now, now)
        or new_current == old_current + 1
    ):
        message = f"Streak continues! Day {new_current} 🔥"
    else:
        message = f"Streak reset. Previous: {old_current} days. Starting fresh! Day 1 💪"
        logger.info(f"Streak broken: was {old_current}, last workout {state.last_workout_date}")

    new_state = StreakState(
        current=new_current,
        best=max(state.best, new_current),
        last_workout_date=now,
    )

    return StreakUpdate(
        state=new_state,
        old_streak=old_current,
        changed=new_current != old_current,
        message=message,
    )
