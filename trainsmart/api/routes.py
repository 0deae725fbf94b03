"""API routes for TrainSmart"""
import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from trainsmart import config
from trainsmart.ai import flows
from trainsmart.ai.contracts import (
    ChatInput,
    ChatOutput,
    DebateInput,
    DebateOutput,
    MultipleChoiceQuestion,
    PerformanceAnalystOutput,
    PhysiqueAnalysisInput,
    PhysiqueAnalysisOutput,
    RealTimeFeedbackInput,
    RealTimeFeedbackOutput,
    TriviaQuestion,
    WorkoutRoutineInput,
)
from trainsmart.api.auth import verify_api_key
from trainsmart.api.middleware import limiter
from trainsmart.api.models import (
    AnalysisRequest,
    DiamondsRequest, DiamondsResponse,
    GameRequest, GameResultsResponse,
    HealthCheckResponse,
    MissionsResponse, MissionStatus,
    OnboardingRequest, ProgressionRequest,
    QuizResultsRequest, TriviaResultsRequest,
    UserStateResponse,
    WorkoutLoggedResponse, WorkoutLogResponse,
    XPRequest, XPResponse,
)
from trainsmart.api.sessions import SessionRegistry
from trainsmart.gamification.leaderboard import Leaderboard
from trainsmart.gamification.missions import WEEKLY_MISSIONS, mission_completion_ratio
from trainsmart.models.workout import CompletedWorkout, DetailedWorkoutLog, WorkoutRoutine
from trainsmart.services import training_service
from trainsmart.services.user_data_service import UserDataStore

logger = logging.getLogger(__name__)

router = APIRouter()

USER_PREFIX = "/api/v1/users/{user_id}"


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


async def _session(request: Request, user_id: str) -> UserDataStore:
    return await get_sessions(request).get(user_id)


def _state_response(request: Request, user_id: str, store: UserDataStore) -> UserStateResponse:
    return UserStateResponse(
        user_id=user_id,
        session_state=store.state.value,
        record=store.record,
        notifications=get_sessions(request).drain_notifications(user_id),
    )


# ==========================================
# User state
# ==========================================

@router.get(USER_PREFIX + "/state", response_model=UserStateResponse)
@limiter.limit("60/minute")
async def get_user_state(request: Request, user_id: str, api_key: str = Depends(verify_api_key)):
    """Full user record as currently cached by the session"""
    store = await _session(request, user_id)
    return _state_response(request, user_id, store)


@router.delete(USER_PREFIX, status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("5/minute")
async def reset_user(request: Request, user_id: str, api_key: str = Depends(verify_api_key)):
    """Delete all of the user's data; defaults are re-seeded"""
    store = await _session(request, user_id)
    await store.reset_all_data()
    logger.info(f"Reset requested via API: {user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(USER_PREFIX + "/sign-out", response_model=UserStateResponse)
@limiter.limit("20/minute")
async def sign_out(request: Request, user_id: str, api_key: str = Depends(verify_api_key)):
    """End the synced session; the next request for this user signs in again"""
    store = await get_sessions(request).sign_out(user_id)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No open session for {user_id}"
        )
    return _state_response(request, user_id, store)


@router.post(USER_PREFIX + "/onboarding", response_model=UserStateResponse)
@limiter.limit("20/minute")
async def complete_onboarding(
    request: Request,
    user_id: str,
    body: OnboardingRequest,
    api_key: str = Depends(verify_api_key)
):
    """Mark onboarding done; weekly missions start from here"""
    store = await _session(request, user_id)
    if body.initial_diamonds is not None:
        await store.set_initial_diamonds(body.initial_diamonds)
    await store.set_onboarding_complete(body.complete)
    return _state_response(request, user_id, store)


# ==========================================
# Workouts
# ==========================================

@router.post(USER_PREFIX + "/workouts", response_model=WorkoutLoggedResponse)
@limiter.limit("30/minute")
async def log_completed_workout(
    request: Request,
    user_id: str,
    body: CompletedWorkout,
    api_key: str = Depends(verify_api_key)
):
    """
    Log a finished workout

    Updates the streak and weekly missions and pays mission rewards.
    """
    store = await _session(request, user_id)
    outcome = await store.add_completed_workout(body)

    return WorkoutLoggedResponse(
        streak=store.streak,
        best_streak=store.best_streak,
        streak_message=outcome.streak_update.message if outcome.streak_update else None,
        missions_completed=[mission.id.value for mission in outcome.newly_completed],
        xp_awarded=sum(grant.xp_awarded for grant in outcome.xp_grants),
        xp=store.xp,
        duplicate=outcome.duplicate,
        notifications=get_sessions(request).drain_notifications(user_id),
    )


@router.post(
    USER_PREFIX + "/workout-logs",
    response_model=WorkoutLogResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
async def log_detailed_workout(
    request: Request,
    user_id: str,
    body: DetailedWorkoutLog,
    api_key: str = Depends(verify_api_key)
):
    """Record a set-by-set workout log"""
    store = await _session(request, user_id)
    await store.add_detailed_workout_log(body)
    return WorkoutLogResponse(
        detailed_logs=len(store.detailed_workout_logs),
        total_volume=body.total_volume(),
    )


@router.post(USER_PREFIX + "/routine", response_model=WorkoutRoutine)
@limiter.limit("5/minute")
async def create_routine(
    request: Request,
    user_id: str,
    body: WorkoutRoutineInput,
    api_key: str = Depends(verify_api_key)
):
    """Generate and save a routine (Rate limit: 5/minute, AI calls are expensive)"""
    store = await _session(request, user_id)
    return await training_service.create_routine(store, body)


@router.post(USER_PREFIX + "/progression", response_model=WorkoutRoutine)
@limiter.limit("5/minute")
async def start_new_cycle(
    request: Request,
    user_id: str,
    body: ProgressionRequest,
    api_key: str = Depends(verify_api_key)
):
    """Generate the next training cycle and clear this cycle's logs"""
    store = await _session(request, user_id)
    return await training_service.start_new_cycle(
        store,
        self_reported_fitness=body.self_reported_fitness,
        training_days=body.training_days,
        training_duration=body.training_duration,
        user_feedback=body.user_feedback,
        language=body.language,
    )


# ==========================================
# XP, diamonds, missions, leaderboard
# ==========================================

@router.post(USER_PREFIX + "/xp", response_model=XPResponse)
@limiter.limit("30/minute")
async def grant_xp(
    request: Request,
    user_id: str,
    body: XPRequest,
    api_key: str = Depends(verify_api_key)
):
    """Grant XP; the current streak bonus is added"""
    store = await _session(request, user_id)
    grant = await store.add_xp(body.amount, reason=body.reason)
    if grant is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User data is not ready ({store.state.value})"
        )

    return XPResponse(
        xp_awarded=grant.xp_awarded,
        bonus=grant.bonus,
        xp=store.xp,
        message=grant.message,
        notifications=get_sessions(request).drain_notifications(user_id),
    )


@router.post(USER_PREFIX + "/diamonds/add", response_model=DiamondsResponse)
@limiter.limit("30/minute")
async def add_diamonds(
    request: Request,
    user_id: str,
    body: DiamondsRequest,
    api_key: str = Depends(verify_api_key)
):
    store = await _session(request, user_id)
    return DiamondsResponse(diamonds=await store.add_diamonds(body.amount))


@router.post(USER_PREFIX + "/diamonds/consume", response_model=DiamondsResponse)
@limiter.limit("30/minute")
async def consume_diamonds(
    request: Request,
    user_id: str,
    body: DiamondsRequest,
    api_key: str = Depends(verify_api_key)
):
    """Spend diamonds; the balance never goes below zero"""
    store = await _session(request, user_id)
    return DiamondsResponse(diamonds=await store.consume_diamonds(body.amount))


@router.get(USER_PREFIX + "/missions", response_model=MissionsResponse)
@limiter.limit("60/minute")
async def get_missions(request: Request, user_id: str, api_key: str = Depends(verify_api_key)):
    """This week's missions; a stale week is shown as fresh progress"""
    store = await _session(request, user_id)
    week = store.current_week_missions()
    if week is None:
        return MissionsResponse()

    missions = []
    for mission in WEEKLY_MISSIONS:
        entry = week.progress.get(mission.id.value)
        missions.append(MissionStatus(
            id=mission.id.value,
            name=mission.name,
            kind=mission.kind.value,
            goal=mission.goal,
            current=entry.current if entry else 0,
            completed=entry.completed if entry else False,
            xp_reward=mission.xp_reward,
            ratio=mission_completion_ratio(mission, entry),
        ))
    return MissionsResponse(week_id=week.week_id, missions=missions)


@router.get(USER_PREFIX + "/leaderboard", response_model=Leaderboard)
@limiter.limit("20/minute")
async def get_leaderboard(
    request: Request,
    user_id: str,
    size: Optional[int] = Query(None, ge=1, le=100),
    api_key: str = Depends(verify_api_key)
):
    """Top users by XP plus this user's rank"""
    store = await _session(request, user_id)
    return await store.get_leaderboard(user_id, size=size or config.LEADERBOARD_SIZE)


# ==========================================
# Games and chat
# ==========================================

@router.post(USER_PREFIX + "/games/trivia", response_model=List[TriviaQuestion])
@limiter.limit("10/minute")
async def new_trivia_round(
    request: Request,
    user_id: str,
    body: GameRequest,
    api_key: str = Depends(verify_api_key)
):
    store = await _session(request, user_id)
    return await training_service.load_trivia(store, body.sport, language=body.language)


@router.post(USER_PREFIX + "/games/trivia/results", response_model=GameResultsResponse)
@limiter.limit("30/minute")
async def finish_trivia_round(
    request: Request,
    user_id: str,
    body: TriviaResultsRequest,
    api_key: str = Depends(verify_api_key)
):
    store = await _session(request, user_id)
    correct = await training_service.finish_trivia(store, body.answers)
    return GameResultsResponse(correct=correct, total=len(body.answers))


@router.post(USER_PREFIX + "/games/quiz", response_model=List[MultipleChoiceQuestion])
@limiter.limit("10/minute")
async def new_quiz_round(
    request: Request,
    user_id: str,
    body: GameRequest,
    api_key: str = Depends(verify_api_key)
):
    store = await _session(request, user_id)
    return await training_service.load_quiz(
        store, body.sport, difficulty=body.difficulty, language=body.language
    )


@router.post(USER_PREFIX + "/games/quiz/results", response_model=GameResultsResponse)
@limiter.limit("30/minute")
async def finish_quiz_round(
    request: Request,
    user_id: str,
    body: QuizResultsRequest,
    api_key: str = Depends(verify_api_key)
):
    store = await _session(request, user_id)
    correct = await training_service.finish_quiz(store, body.answers)
    return GameResultsResponse(correct=correct, total=len(body.answers))


@router.post(USER_PREFIX + "/chat", response_model=ChatOutput)
@limiter.limit("10/minute")
async def chat(
    request: Request,
    user_id: str,
    body: ChatInput,
    api_key: str = Depends(verify_api_key)
):
    """Ask the assistant (Rate limit: 10/minute, AI calls are expensive)"""
    return await flows.chat(body)


@router.post(USER_PREFIX + "/games/debate", response_model=DebateOutput)
@limiter.limit("10/minute")
async def debate_turn(
    request: Request,
    user_id: str,
    body: DebateInput,
    api_key: str = Depends(verify_api_key)
):
    """Next AI turn in a debate; send the transcript so far as history"""
    return await flows.debate_turn(body)


# ==========================================
# Analysis
# ==========================================

@router.post(USER_PREFIX + "/performance", response_model=PerformanceAnalystOutput)
@limiter.limit("5/minute")
async def analyze_performance(
    request: Request,
    user_id: str,
    body: AnalysisRequest,
    api_key: str = Depends(verify_api_key)
):
    """Analysis of this cycle's detailed workout logs"""
    store = await _session(request, user_id)
    return await training_service.analyze_performance(store, language=body.language)


@router.post(USER_PREFIX + "/physique", response_model=PhysiqueAnalysisOutput)
@limiter.limit("5/minute")
async def analyze_physique(
    request: Request,
    user_id: str,
    body: PhysiqueAnalysisInput,
    api_key: str = Depends(verify_api_key)
):
    """Physique scores from a photo data URI"""
    return await flows.analyze_physique(body)


@router.post(USER_PREFIX + "/feedback", response_model=RealTimeFeedbackOutput)
@limiter.limit("5/minute")
async def exercise_feedback(
    request: Request,
    user_id: str,
    body: RealTimeFeedbackInput,
    api_key: str = Depends(verify_api_key)
):
    """Form feedback on an exercise video data URI"""
    return await flows.real_time_feedback(body)


# ==========================================
# Operations
# ==========================================

@router.get("/api/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    try:
        await get_sessions(request).documents.get("health", "ping")
        store_status = "connected"
    except Exception as e:
        logger.error(f"Document store health check failed: {e}")
        store_status = "disconnected"

    return HealthCheckResponse(
        status="healthy" if store_status == "connected" else "degraded",
        store=store_status,
        timestamp=datetime.now()
    )


@router.get("/metrics")
async def metrics_endpoint():
    """Expose Prometheus metrics"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
