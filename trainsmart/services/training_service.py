"""
Training flows that combine AI generation with the user's stored data

Each helper reads what it needs from a UserDataStore, calls an AI flow and
writes the result back. A failed generation shows a destructive toast and is
re-raised so the caller can return to its previous state.
"""
import json
import logging
from typing import List, Optional

from trainsmart.ai import flows
from trainsmart.ai.contracts import (
    AdaptiveProgressionInput,
    MultipleChoiceQuestion,
    MultipleChoiceQuizInput,
    PerformanceAnalystInput,
    PerformanceAnalystOutput,
    TriviaInput,
    TriviaQuestion,
    WorkoutRoutineInput,
)
from trainsmart.exceptions import AIGenerationError, ValidationError
from trainsmart.models.user import Notification, QuizHistoryItem, TriviaHistoryItem
from trainsmart.models.workout import WorkoutRoutine
from trainsmart.services.user_data_service import UserDataStore

logger = logging.getLogger(__name__)


def _generation_failed(store: UserDataStore, title: str) -> None:
    store.notify(Notification(
        title=title,
        description="An unexpected error occurred. Please try again.",
        variant="destructive",
    ))


def calculate_adherence(store: UserDataStore) -> float:
    """Detailed logs recorded this cycle per planned routine day"""
    routine = store.workout_routine
    planned_days = len(routine.structured_routine) if routine else 0
    return len(store.detailed_workout_logs) / (planned_days or 1)


async def create_routine(store: UserDataStore, request: WorkoutRoutineInput) -> WorkoutRoutine:
    """Generate the first routine (onboarding) and save it"""
    try:
        output = await flows.generate_workout_routine(request)
    except AIGenerationError:
        _generation_failed(store, "Error generating routine")
        raise

    routine = WorkoutRoutine(structured_routine=output.structured_routine, sport=request.sport)
    await store.save_workout_routine(routine)
    return routine


async def start_new_cycle(
    store: UserDataStore,
    self_reported_fitness: str,
    training_days: Optional[int] = None,
    training_duration: Optional[int] = None,
    user_feedback: Optional[str] = None,
    language: str = "en"
) -> WorkoutRoutine:
    """
    Generate the next training cycle from the last one

    Saves the new routine (keeping the sport) and clears both workout logs.

    Raises:
        ValidationError: If there is no routine to progress from
        AIGenerationError: If generation fails (nothing is changed)
    """
    routine = store.workout_routine
    if routine is None:
        store.notify(Notification(
            title="Insufficient data",
            description="No routine or detailed logs were found.",
            variant="destructive",
        ))
        raise ValidationError("No workout routine to progress from", field="workout_routine")

    logs = [log.to_document() for log in store.detailed_workout_logs]
    adherence = calculate_adherence(store)
    logger.info(f"Starting new cycle: adherence={adherence:.2f}, fitness={self_reported_fitness}")

    try:
        request = AdaptiveProgressionInput(
            training_data=json.dumps(logs),
            adherence=adherence,
            self_reported_fitness=self_reported_fitness,
            original_routine=json.dumps(routine.to_document()),
            training_days=training_days,
            training_duration=training_duration,
            user_feedback=user_feedback,
            language=language,
        )
        output = await flows.generate_adaptive_progression(request)
    except AIGenerationError:
        _generation_failed(store, "Error generating progression")
        raise

    new_routine = WorkoutRoutine(structured_routine=output.structured_routine, sport=routine.sport)
    await store.save_workout_routine(new_routine)
    await store.clear_workout_progress()
    store.notify(Notification(
        title="New routine generated!",
        description="Your training plan has been updated.",
    ))
    return new_routine


# ==========================================
# Games
# ==========================================

async def load_trivia(store: UserDataStore, sport: str, language: str = "en") -> List[TriviaQuestion]:
    """New myth-or-fact round, informed by the stored trivia history"""
    history = [item.to_document() for item in store.trivia_history]
    try:
        output = await flows.generate_trivia(TriviaInput(
            sport=sport,
            history=json.dumps(history) if history else None,
            language=language,
        ))
    except AIGenerationError:
        _generation_failed(store, "Error loading the game")
        raise
    return output.questions


async def finish_trivia(store: UserDataStore, answers: List[TriviaHistoryItem]) -> int:
    """Record a finished trivia round; returns the number of correct answers"""
    await store.update_trivia_history(answers)
    return sum(1 for answer in answers if answer.is_correct)


async def load_quiz(
    store: UserDataStore,
    sport: str,
    difficulty: str = "normal",
    language: str = "en"
) -> List[MultipleChoiceQuestion]:
    """New multiple choice round, informed by the stored quiz history"""
    history = [item.to_document() for item in store.quiz_history]
    try:
        output = await flows.generate_multiple_choice_quiz(MultipleChoiceQuizInput(
            sport=sport,
            history=json.dumps(history) if history else None,
            difficulty=difficulty,
            language=language,
        ))
    except AIGenerationError:
        _generation_failed(store, "Error loading the quiz")
        raise
    return output.questions


async def finish_quiz(store: UserDataStore, answers: List[QuizHistoryItem]) -> int:
    """Record a finished quiz; returns the number of correct answers"""
    await store.update_quiz_history(answers)
    return sum(1 for answer in answers if answer.is_correct)


# ==========================================
# Analysis
# ==========================================

async def analyze_performance(store: UserDataStore, language: str = "en") -> PerformanceAnalystOutput:
    """
    Coach's read of this cycle's detailed logs

    Raises:
        ValidationError: If nothing has been logged yet
        AIGenerationError: If generation fails
    """
    logs = [log.to_document() for log in store.detailed_workout_logs]
    if not logs:
        store.notify(Notification(
            title="Insufficient data",
            description="Log a few workouts before asking for an analysis.",
            variant="destructive",
        ))
        raise ValidationError("No detailed workout logs to analyze", field="detailed_workout_logs")

    try:
        return await flows.analyze_performance(PerformanceAnalystInput(
            training_data=json.dumps(logs),
            language=language,
        ))
    except AIGenerationError:
        _generation_failed(store, "Error analyzing performance")
        raise
