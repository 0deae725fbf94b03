"""Weekly mission models"""
from enum import Enum
from pydantic import ConfigDict, Field

from trainsmart.models.base import DocumentModel


class MissionId(str, Enum):
    """Known weekly missions"""
    COMPLETE_3_WORKOUTS = "complete_3_workouts"
    COMPLETE_5_WORKOUTS = "complete_5_workouts"
    LIFT_10000_KG = "lift_10000_kg"
    REACH_3_DAY_STREAK = "reach_3_day_streak"


class MissionKind(str, Enum):
    """What a mission counts"""
    WORKOUTS_COMPLETED = "workoutsCompleted"
    TOTAL_VOLUME = "totalVolume"
    STREAK = "streak"


class Mission(DocumentModel):
    """Mission definition (defined at build time, never mutated)"""
    model_config = ConfigDict(frozen=True)

    id: MissionId
    kind: MissionKind
    goal: float
    xp_reward: int
    name: str


class MissionProgress(DocumentModel):
    """Progress toward a single mission within one week"""
    current: float = 0
    completed: bool = False


class WeeklyMissionState(DocumentModel):
    """
    Mission progress for one week.

    week_id is the ISO date of the Monday starting the week; progress is
    keyed by MissionId value.
    """
    week_id: str
    progress: dict[str, MissionProgress] = Field(default_factory=dict)
