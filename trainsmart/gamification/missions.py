"""
Weekly Missions

Catalog-defined objectives that reset every Monday. Each mission counts one
metric (workouts completed, total lifted volume, or best streak reached) and
pays a fixed XP reward the first time its goal is reached within the week.

Completion is one-way within a week: a completed mission is never
re-evaluated, so its reward cannot fire twice.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple, Union

from trainsmart.exceptions import RecordNotFoundError
from trainsmart.models.mission import (
    Mission,
    MissionId,
    MissionKind,
    MissionProgress,
    WeeklyMissionState,
)
from trainsmart.models.workout import CompletedWorkout

logger = logging.getLogger(__name__)


# ============================================
# Mission Catalog
# ============================================

WEEKLY_MISSIONS: Tuple[Mission, ...] = (
    Mission(
        id=MissionId.COMPLETE_3_WORKOUTS,
        kind=MissionKind.WORKOUTS_COMPLETED,
        goal=3,
        xp_reward=100,
        name="Complete 3 workouts",
    ),
    Mission(
        id=MissionId.COMPLETE_5_WORKOUTS,
        kind=MissionKind.WORKOUTS_COMPLETED,
        goal=5,
        xp_reward=250,
        name="Complete 5 workouts",
    ),
    Mission(
        id=MissionId.LIFT_10000_KG,
        kind=MissionKind.TOTAL_VOLUME,
        goal=10000,
        xp_reward=150,
        name="Lift 10,000 kg",
    ),
    Mission(
        id=MissionId.REACH_3_DAY_STREAK,
        kind=MissionKind.STREAK,
        goal=3,
        xp_reward=75,
        name="Reach a 3-day streak",
    ),
)


def get_mission(mission_id: Union[MissionId, str]) -> Mission:
    """
    Get a mission from the catalog

    Raises:
        RecordNotFoundError: If the id is not in the catalog
    """
    for mission in WEEKLY_MISSIONS:
        if mission.id.value == getattr(mission_id, "value", mission_id):
            return mission
    raise RecordNotFoundError(
        f"Unknown mission '{mission_id}'",
        record_type="Mission",
        record_id=str(mission_id),
    )


# ============================================
# Weekly epochs
# ============================================

def week_id_for(day: Union[date, datetime]) -> str:
    """ISO date of the Monday starting the week that contains `day`"""
    if isinstance(day, datetime):
        day = day.date()
    monday = day - timedelta(days=day.weekday())
    return monday.isoformat()


def new_weekly_state(
    day: Union[date, datetime],
    missions: Iterable[Mission] = WEEKLY_MISSIONS
) -> WeeklyMissionState:
    """Fresh, zeroed progress over the full catalog"""
    return WeeklyMissionState(
        week_id=week_id_for(day),
        progress={mission.id.value: MissionProgress() for mission in missions},
    )


def ensure_current_week(
    state: Optional[WeeklyMissionState],
    day: Union[date, datetime],
    missions: Iterable[Mission] = WEEKLY_MISSIONS
) -> Tuple[WeeklyMissionState, bool]:
    """
    Make sure mission progress belongs to the week containing `day`

    Returns:
        (state, reset) where reset is True when a fresh state replaced a
        missing or stale one
    """
    current_week = week_id_for(day)
    if state is not None and state.week_id == current_week:
        return state, False

    if state is not None:
        logger.info(f"Weekly missions reset: {state.week_id} -> {current_week}")
    return new_weekly_state(day, missions), True


# ============================================
# Progress tracking
# ============================================

@dataclass
class MissionUpdate:
    """Result of applying a workout to mission progress"""
    updated_progress: Dict[str, MissionProgress]
    newly_completed: List[Mission] = field(default_factory=list)


def apply_workout_to_missions(
    missions: Iterable[Mission],
    progress: Dict[str, MissionProgress],
    workout: CompletedWorkout,
    new_streak: int
) -> MissionUpdate:
    """
    Apply a completed workout to weekly mission progress

    Completed missions are skipped. Streak missions track the best streak
    reached this week rather than a sum.

    Args:
        missions: Mission definitions to evaluate
        progress: Current progress keyed by mission id (not modified)
        workout: The workout that was just completed
        new_streak: Streak count after this workout

    Returns:
        MissionUpdate with the new progress mapping and the missions that
        reached their goal with this workout
    """
    updated = {key: value.model_copy() for key, value in progress.items()}
    newly_completed: List[Mission] = []

    for mission in missions:
        entry = updated.get(mission.id.value) or MissionProgress()

        if entry.completed:
            updated[mission.id.value] = entry
            continue

        if mission.kind == MissionKind.WORKOUTS_COMPLETED:
            entry.current += 1
        elif mission.kind == MissionKind.TOTAL_VOLUME:
            entry.current += workout.volume
        elif mission.kind == MissionKind.STREAK:
            entry.current = max(entry.current, new_streak)

        if entry.current >= mission.goal:
            entry.completed = True
            newly_completed.append(mission)
            logger.info(f"Mission completed: {mission.id.value} ({entry.current}/{mission.goal})")

        updated[mission.id.value] = entry

    return MissionUpdate(updated_progress=updated, newly_completed=newly_completed)


def mission_completion_ratio(mission: Mission, entry: Optional[MissionProgress]) -> float:
    """Progress toward the goal as a fraction in [0, 1]"""
    if entry is None:
        return 0.0
    if entry.completed:
        return 1.0
    return min(entry.current / mission.goal, 1.0)
