"""User-related Pydantic models"""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from trainsmart.models.base import DocumentModel
from trainsmart.models.mission import WeeklyMissionState
from trainsmart.models.workout import CompletedWorkout, DetailedWorkoutLog, WorkoutRoutine


class Identity(BaseModel):
    """Signed-in identity as reported by the identity provider"""
    uid: str
    display_name: str = "Anonymous"
    photo_url: Optional[str] = None


class StreakState(DocumentModel):
    """Consecutive-day workout streak"""
    current: int = 0
    best: int = 0
    last_workout_date: Optional[datetime] = None


class UserProfile(DocumentModel):
    """Public profile used for ranking; xp mirrors the user's XP ledger"""
    uid: str
    display_name: str
    photo_url: Optional[str] = None
    xp: int = 0
    last_login: Optional[datetime] = None


class TriviaHistoryItem(DocumentModel):
    """One answered myth-or-fact statement"""
    statement: str
    is_myth: bool
    user_answer: bool
    is_correct: bool


class QuizHistoryItem(DocumentModel):
    """One answered multiple choice question"""
    question: str
    user_answer_index: int
    correct_answer_index: int
    is_correct: bool


class UserRecord(DocumentModel):
    """The whole per-user document; defaults are the freshly seeded record"""
    onboarding_complete: bool = False
    workout_routine: Optional[WorkoutRoutine] = None
    completed_workouts: List[CompletedWorkout] = Field(default_factory=list)
    detailed_workout_logs: List[DetailedWorkoutLog] = Field(default_factory=list)
    pending_feedback: List[str] = Field(default_factory=list)
    diamonds: int = 0
    xp: int = 0
    streak: int = 0
    best_streak: int = 0
    last_workout_date: Optional[datetime] = None
    mission_data: Optional[WeeklyMissionState] = None
    trivia_history: List[TriviaHistoryItem] = Field(default_factory=list)
    quiz_history: List[QuizHistoryItem] = Field(default_factory=list)

    @property
    def streak_state(self) -> StreakState:
        return StreakState(
            current=self.streak,
            best=self.best_streak,
            last_workout_date=self.last_workout_date,
        )


class Notification(BaseModel):
    """User-facing toast"""
    title: str
    description: Optional[str] = None
    variant: Literal["default", "destructive"] = "default"
