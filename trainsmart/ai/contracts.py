"""
Request/response contracts for the AI generation flows

Inputs are validated once when built; outputs are enforced by the agents'
output types. Field names serialize to camelCase like stored documents.
"""
from typing import List, Literal, Optional
from pydantic import Field, field_validator

from trainsmart.models.base import DocumentModel
from trainsmart.models.workout import DailyWorkout


def _check_data_uri(value: str) -> str:
    if not value.startswith("data:") or ";base64," not in value:
        raise ValueError("expected a base64 data URI: data:<mimetype>;base64,<data>")
    return value


# ==========================================
# Workout routines
# ==========================================

class PhysiqueAnalysisOutput(DocumentModel):
    """Visual estimate of a user's physique"""
    potential_score: float = Field(..., ge=0, le=10, description="Muscle-building potential from 0 to 10.")
    body_fat_percentage: float = Field(..., ge=0, le=100, description="Estimated body fat percentage.")
    symmetry_score: float = Field(..., ge=0, le=10, description="Muscular symmetry and balance from 0 to 10.")
    genetics_score: float = Field(..., ge=0, le=10, description="Estimated genetic potential from 0 to 10.")
    average_score: float = Field(0, ge=0, le=10, description="Average of potential, symmetry and genetics.")
    feedback: str = Field(..., description="Concise feedback on strengths and areas for improvement.")


class WorkoutRoutineInput(DocumentModel):
    goals: str = Field(..., description="The user goals, e.g. lose weight, gain muscle, improve endurance.")
    sport: str = Field(..., description="The sport the user is training for.")
    fitness_level: str = Field(..., description="beginner, intermediate or advanced.")
    equipment: Optional[List[str]] = Field(None, description="Available equipment; ['none'] or ['gym'] are special.")
    age: Optional[int] = None
    weight: Optional[float] = Field(None, description="Weight in kg.")
    gender: Optional[str] = None
    training_days: Optional[int] = Field(None, description="Days per week to train.")
    training_duration: Optional[int] = Field(None, description="Minutes per session.")
    fitness_assessment: Optional[str] = Field(None, description="JSON of assessment questions and answers.")
    physique_analysis: Optional[PhysiqueAnalysisOutput] = None
    language: str = "en"


class WorkoutRoutineOutput(DocumentModel):
    structured_routine: List[DailyWorkout] = Field(
        default_factory=list, description="A structured workout routine."
    )


class AdaptiveProgressionInput(DocumentModel):
    training_data: str = Field(..., description="JSON array of detailed workout logs from the last cycle.")
    adherence: float = Field(..., ge=0, description="Fraction of planned workouts completed, e.g. 0.8.")
    self_reported_fitness: Literal["easy", "just-right", "hard"] = Field(
        ..., description="How the last cycle felt."
    )
    original_routine: str = Field(..., description="JSON of the routine used as a baseline.")
    training_days: Optional[int] = None
    training_duration: Optional[int] = None
    user_feedback: Optional[str] = Field(None, description="Free-text feedback; takes priority over other rules.")
    language: str = "en"


# ==========================================
# Games
# ==========================================

class TriviaInput(DocumentModel):
    sport: str
    history: Optional[str] = Field(None, description="JSON of previously answered statements.")
    language: str = "en"


class TriviaQuestion(DocumentModel):
    statement: str = Field(..., description="Statement to evaluate as a myth or a fact.")
    is_myth: bool
    explanation: str


class TriviaOutput(DocumentModel):
    questions: List[TriviaQuestion] = Field(default_factory=list, description="5-10 statements.")


class MultipleChoiceQuizInput(DocumentModel):
    sport: str
    history: Optional[str] = Field(None, description="JSON of previously answered questions.")
    difficulty: Literal["easy", "normal", "hard"] = "normal"
    language: str = "en"


class MultipleChoiceQuestion(DocumentModel):
    question: str
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer_index: int = Field(..., ge=0, le=3)
    explanation: str


class MultipleChoiceQuizOutput(DocumentModel):
    questions: List[MultipleChoiceQuestion] = Field(default_factory=list, description="5-10 questions.")


class ConversationMessage(DocumentModel):
    role: Literal["user", "model"]
    content: str


class DebateInput(DocumentModel):
    topic: str
    user_stance: str
    history: List[ConversationMessage] = Field(default_factory=list)
    language: str = "en"


class DebateOutput(DocumentModel):
    response: str = Field(..., description="The counter-argument.")


# ==========================================
# Assistant and analysis
# ==========================================

class ChatInput(DocumentModel):
    history: List[ConversationMessage] = Field(default_factory=list)
    question: str
    language: str = "en"


class ChatOutput(DocumentModel):
    answer: str


class PerformanceAnalystInput(DocumentModel):
    training_data: str = Field(..., description="JSON array of detailed workout logs.")
    language: str = "en"


class PerformanceAnalystOutput(DocumentModel):
    analysis: str = Field(..., description="Strengths, weaknesses and next-cycle methodology.")


class PhysiqueAnalysisInput(DocumentModel):
    photo_data_uri: str = Field(..., description="data:<mimetype>;base64,<data>")
    language: str = "en"

    @field_validator("photo_data_uri")
    @classmethod
    def validate_photo(cls, value: str) -> str:
        return _check_data_uri(value)


class RealTimeFeedbackInput(DocumentModel):
    video_data_uri: str = Field(..., description="data:<mimetype>;base64,<data>")
    exercise_type: str
    language: str = "en"

    @field_validator("video_data_uri")
    @classmethod
    def validate_video(cls, value: str) -> str:
        return _check_data_uri(value)


class FeedbackPoint(DocumentModel):
    point: str = Field(..., description="One-sentence description of the mistake.")
    correction: str = Field(..., description="Why it matters and how to fix it.")
    summary: str = Field("", description="2-3 word summary, e.g. 'Hip Rise'.")


class RealTimeFeedbackOutput(DocumentModel):
    is_correct: bool
    feedback: List[FeedbackPoint] = Field(default_factory=list, max_length=3)
