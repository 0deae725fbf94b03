"""Pydantic models for API request/response validation"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field
from datetime import datetime

from trainsmart.models.user import Notification, QuizHistoryItem, TriviaHistoryItem, UserRecord


class UserStateResponse(BaseModel):
    """The user's whole record plus session status"""
    user_id: str
    session_state: str = Field(..., description="uninitialized, syncing, ready or anonymous")
    record: UserRecord
    notifications: List[Notification] = Field(default_factory=list)


class WorkoutLoggedResponse(BaseModel):
    """Outcome of logging a completed workout"""
    streak: int
    best_streak: int
    streak_message: Optional[str] = None
    missions_completed: List[str] = Field(default_factory=list)
    xp_awarded: int = 0
    xp: int
    duplicate: bool = False
    notifications: List[Notification] = Field(default_factory=list)


class WorkoutLogResponse(BaseModel):
    """Acknowledgement of a detailed workout log"""
    detailed_logs: int = Field(..., description="Detailed logs recorded this cycle")
    total_volume: float = Field(..., description="Volume of the log just recorded (kg)")


class XPRequest(BaseModel):
    """Request to grant XP"""
    amount: int = Field(..., ge=0, description="Base XP before the streak bonus")
    reason: Optional[str] = Field(None, description="Shown in the notification")


class XPResponse(BaseModel):
    """Result of an XP grant"""
    xp_awarded: int
    bonus: int
    xp: int
    message: str
    notifications: List[Notification] = Field(default_factory=list)


class DiamondsRequest(BaseModel):
    """Request to credit or spend diamonds"""
    amount: int = Field(..., ge=0)


class DiamondsResponse(BaseModel):
    diamonds: int


class MissionStatus(BaseModel):
    """One mission with this week's progress"""
    id: str
    name: str
    kind: str
    goal: float
    current: float
    completed: bool
    xp_reward: int
    ratio: float = Field(..., ge=0, le=1)


class MissionsResponse(BaseModel):
    week_id: Optional[str] = Field(None, description="Monday of the current week; None before onboarding")
    missions: List[MissionStatus] = Field(default_factory=list)


class OnboardingRequest(BaseModel):
    complete: bool = True
    initial_diamonds: Optional[int] = Field(None, ge=0)


class ProgressionRequest(BaseModel):
    """Request to start a new training cycle"""
    self_reported_fitness: Literal["easy", "just-right", "hard"]
    training_days: Optional[int] = Field(None, ge=1, le=7)
    training_duration: Optional[int] = Field(None, gt=0)
    user_feedback: Optional[str] = None
    language: str = "en"


class AnalysisRequest(BaseModel):
    language: str = "en"


class GameRequest(BaseModel):
    """Request a new trivia or quiz round"""
    sport: str
    difficulty: Literal["easy", "normal", "hard"] = "normal"
    language: str = "en"


class TriviaResultsRequest(BaseModel):
    answers: List[TriviaHistoryItem]


class QuizResultsRequest(BaseModel):
    answers: List[QuizHistoryItem]


class GameResultsResponse(BaseModel):
    correct: int
    total: int


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    store: str = Field(..., description="Document store status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    timestamp: datetime = Field(default_factory=datetime.now)
