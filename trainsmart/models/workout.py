"""Workout routine and workout log models"""
from datetime import datetime
from typing import List, Optional
from pydantic import Field

from trainsmart.models.base import DocumentModel


class ExerciseDetail(DocumentModel):
    """One exercise in a routine day"""
    name: str = Field(..., description="Name of the exercise.")
    sets: str = Field(..., description="Number of sets.")
    reps: str = Field(..., description='Repetitions (e.g. "8-12") or a duration (e.g. "30 sec").')
    rest: str = Field(..., description="Rest time between sets.")
    requires_feedback: bool = Field(False, description="Whether the exercise needs video form feedback.")
    requires_weight: bool = Field(False, description="Whether weight should be logged for the exercise.")
    youtube_query: str = Field("", description="YouTube search query for a tutorial video.")


class DailyWorkout(DocumentModel):
    """One training day of a routine"""
    day: int = Field(..., description="Day of the week for the workout.")
    title: str = Field(..., description="Title of the workout for the day.")
    duration: float = Field(..., description="Estimated duration of the workout in minutes.")
    exercises: List[ExerciseDetail] = Field(default_factory=list)


class WorkoutRoutine(DocumentModel):
    """A generated routine, stored with the sport it was generated for"""
    structured_routine: List[DailyWorkout] = Field(default_factory=list)
    sport: Optional[str] = None


class CompletedWorkout(DocumentModel):
    """
    Summary of a finished workout session.

    Append-only; cleared in bulk when a new training cycle begins.
    workout_id is an optional idempotency key: a repeated submission with
    the same id is ignored.
    """
    date: datetime
    workout: str
    duration: float = 0
    volume: float = Field(0, ge=0)
    workout_id: Optional[str] = None


class LoggedSet(DocumentModel):
    """A single set as performed"""
    weight: Optional[float] = None
    reps: Optional[float] = None
    completed: bool = False


class ExerciseLog(DocumentModel):
    """All sets performed for one exercise"""
    name: str
    sets: List[LoggedSet] = Field(default_factory=list)


class DetailedWorkoutLog(DocumentModel):
    """Set-by-set log of a workout session, used as training data"""
    date: datetime
    title: str
    log: List[ExerciseLog] = Field(default_factory=list)

    def total_volume(self) -> float:
        """Sum of weight x reps over completed sets"""
        return sum(
            (s.weight or 0) * (s.reps or 0)
            for exercise in self.log
            for s in exercise.sets
            if s.completed
        )
