"""
User State Store

One UserDataStore per session. It owns a local cached UserRecord and mirrors
the remote per-user document in the `users` collection.

Every mutation follows the same two steps:
1. Apply the change to the local cache (callers see it immediately)
2. Best-effort write to the remote store; a failure is logged and counted,
   never raised and never rolled back

The live subscription keeps the cache in step with remote changes: every
snapshot pushed by the store replaces the local record.

State machine:
    UNINITIALIZED -> SYNCING -> READY
    READY -> UNINITIALIZED   (remote record deleted, defaults are re-seeded)
    UNINITIALIZED -> ANONYMOUS (no identity, defaults only, no remote writes)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from enum import Enum
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from trainsmart import config
from trainsmart.db.document_store import (
    PROFILES_COLLECTION,
    USERS_COLLECTION,
    DocumentStore,
    Snapshot,
    Subscription,
)
from trainsmart.gamification import diamonds as diamond_ledger
from trainsmart.gamification.leaderboard import Leaderboard, build_leaderboard
from trainsmart.gamification.missions import (
    WEEKLY_MISSIONS,
    apply_workout_to_missions,
    ensure_current_week,
)
from trainsmart.gamification.streak_system import StreakUpdate, update_streak
from trainsmart.gamification.xp_system import XPGrant, format_xp_notification, grant_xp
from trainsmart.models.mission import Mission, WeeklyMissionState
from trainsmart.models.user import (
    Identity,
    Notification,
    QuizHistoryItem,
    TriviaHistoryItem,
    UserProfile,
    UserRecord,
)
from trainsmart.models.workout import CompletedWorkout, DetailedWorkoutLog, WorkoutRoutine
from trainsmart.observability.metrics import (
    missions_completed_total,
    remote_write_failures_total,
    workouts_logged_total,
    xp_granted_total,
)

logger = logging.getLogger(__name__)

NotifyFn = Callable[[Notification], None]
Clock = Callable[[], datetime]


class SessionState(str, Enum):
    """Where the session is in its sync lifecycle"""
    UNINITIALIZED = "uninitialized"
    SYNCING = "syncing"
    READY = "ready"
    ANONYMOUS = "anonymous"


@dataclass
class WorkoutOutcome:
    """What logging a completed workout changed"""
    streak_update: Optional[StreakUpdate] = None
    newly_completed: List[Mission] = field(default_factory=list)
    xp_grants: List[XPGrant] = field(default_factory=list)
    duplicate: bool = False


def _log_notification(notification: Notification) -> None:
    level = logging.WARNING if notification.variant == "destructive" else logging.INFO
    logger.log(level, f"Notification: {notification.title} - {notification.description or ''}")


def _utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


class UserDataStore:
    """Local-first cache of one user's record, mirrored to the document store"""

    def __init__(
        self,
        documents: DocumentStore,
        notify: Optional[NotifyFn] = None,
        clock: Optional[Clock] = None,
        timezone: str = config.DEFAULT_TIMEZONE,
    ):
        self._documents = documents
        self._notify = notify or _log_notification
        self._clock = clock or _utc_now
        self._tz = ZoneInfo(timezone)

        self._state = SessionState.UNINITIALIZED
        self._identity: Optional[Identity] = None
        self._record = UserRecord()
        self._subscription: Optional[Subscription] = None

    # ============================================
    # Read access
    # ============================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def record(self) -> UserRecord:
        """Copy of the cached record"""
        return self._record.model_copy(deep=True)

    @property
    def xp(self) -> int:
        return self._record.xp

    @property
    def diamonds(self) -> int:
        return self._record.diamonds

    @property
    def streak(self) -> int:
        return self._record.streak

    @property
    def best_streak(self) -> int:
        return self._record.best_streak

    @property
    def mission_data(self) -> Optional[WeeklyMissionState]:
        return self._record.mission_data

    def current_week_missions(self) -> Optional[WeeklyMissionState]:
        """
        This week's mission progress as of the session clock

        A stale stored week is shown as fresh zeroed progress; nothing is
        written. None before onboarding.
        """
        if self._record.mission_data is None:
            return None
        week, _ = ensure_current_week(self._record.mission_data, self._today())
        return week

    @property
    def completed_workouts(self) -> List[CompletedWorkout]:
        return list(self._record.completed_workouts)

    @property
    def detailed_workout_logs(self) -> List[DetailedWorkoutLog]:
        return list(self._record.detailed_workout_logs)

    @property
    def workout_routine(self) -> Optional[WorkoutRoutine]:
        return self._record.workout_routine

    @property
    def onboarding_complete(self) -> bool:
        return self._record.onboarding_complete

    @property
    def pending_feedback(self) -> List[str]:
        return list(self._record.pending_feedback)

    @property
    def trivia_history(self) -> List[TriviaHistoryItem]:
        return list(self._record.trivia_history)

    @property
    def quiz_history(self) -> List[QuizHistoryItem]:
        return list(self._record.quiz_history)

    def notify(self, notification: Notification) -> None:
        """Send a toast to the user"""
        self._notify(notification)

    # ============================================
    # Identity and reconciliation
    # ============================================

    async def handle_identity(self, identity: Optional[Identity]) -> None:
        """
        React to a sign-in or sign-out

        With an identity the session subscribes to the user's document (the
        first snapshot arrives during subscribe) and upserts the public
        profile. Without one the session falls back to local defaults.
        """
        self._close_subscription()
        self._identity = identity

        if identity is None:
            self._record = UserRecord()
            self._state = SessionState.ANONYMOUS
            logger.info("No identity: running with local defaults only")
            return

        self._state = SessionState.SYNCING
        logger.info(f"Syncing user data for {identity.uid}")

        try:
            self._subscription = await self._documents.subscribe(
                USERS_COLLECTION, identity.uid, self.reconcile
            )
        except Exception as e:
            logger.error(f"Failed to subscribe to user data for {identity.uid}: {e}", exc_info=True)
            self.notify(Notification(
                title="Sync unavailable",
                description="We couldn't load your data. Changes may not be saved.",
                variant="destructive",
            ))
            return

        await self._upsert_profile(identity)

    async def reconcile(self, snapshot: Snapshot) -> None:
        """
        Apply a snapshot pushed by the remote store

        A missing document seeds a default record; an existing one replaces
        the local cache.
        """
        if self._identity is None:
            return

        if snapshot is None:
            self._state = SessionState.UNINITIALIZED
            await self._seed_default_record()
            return

        try:
            record = UserRecord.model_validate(snapshot)
        except PydanticValidationError as e:
            logger.error(
                f"Ignoring malformed user record for {self._identity.uid}: {e}",
                exc_info=True,
            )
            return

        self._record = record
        self._state = SessionState.READY
        await self._ensure_mission_state()

    async def _seed_default_record(self) -> None:
        uid = self._identity.uid
        logger.info(f"Seeding default user record for {uid}")
        try:
            await self._documents.set(USERS_COLLECTION, uid, UserRecord().to_document())
        except Exception as e:
            remote_write_failures_total.labels(operation="seed_record").inc()
            logger.error(f"Failed to seed user record for {uid}: {e}", exc_info=True)
            return
        await self._upsert_profile(self._identity)

    async def _upsert_profile(self, identity: Identity) -> None:
        """Create the profile on first sign-in, refresh last_login afterwards"""
        now = self._clock()
        try:
            existing = await self._documents.get(PROFILES_COLLECTION, identity.uid)
            if existing is None:
                profile = UserProfile(
                    uid=identity.uid,
                    display_name=identity.display_name,
                    photo_url=identity.photo_url,
                    xp=self._record.xp,
                    last_login=now,
                )
                await self._documents.set(PROFILES_COLLECTION, identity.uid, profile.to_document())
                logger.info(f"Created profile for {identity.uid}")
            else:
                await self._documents.update(
                    PROFILES_COLLECTION,
                    identity.uid,
                    {
                        "displayName": identity.display_name,
                        "photoUrl": identity.photo_url,
                        "lastLogin": now.isoformat(),
                    },
                )
        except Exception as e:
            remote_write_failures_total.labels(operation="upsert_profile").inc()
            logger.error(f"Failed to upsert profile for {identity.uid}: {e}", exc_info=True)

    async def _ensure_mission_state(self) -> None:
        """Lazily create this week's mission state once onboarding is done"""
        if not self._record.onboarding_complete:
            return

        mission_data, reset = ensure_current_week(self._record.mission_data, self._today())
        if not reset:
            return

        self._record.mission_data = mission_data
        await self._persist("init_missions", {"missionData": mission_data.to_document()})

    def _close_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    async def close(self) -> None:
        """Stop listening for remote changes"""
        self._close_subscription()

    # ============================================
    # Write-through helpers
    # ============================================

    def _can_mutate(self) -> bool:
        return self._state in (SessionState.READY, SessionState.ANONYMOUS)

    def _today(self) -> datetime:
        return self._clock().astimezone(self._tz)

    async def _persist(self, operation: str, fields: dict) -> bool:
        """
        Best-effort remote write of top-level fields

        Returns:
            True if the write went through; anonymous sessions never write
        """
        if self._state != SessionState.READY or self._identity is None:
            return False

        try:
            await self._documents.update(USERS_COLLECTION, self._identity.uid, fields)
            return True
        except Exception as e:
            remote_write_failures_total.labels(operation=operation).inc()
            logger.error(
                f"Remote write '{operation}' failed for {self._identity.uid}, keeping local state: {e}",
                exc_info=True,
            )
            return False

    async def _mirror_profile_xp(self) -> None:
        if self._state != SessionState.READY or self._identity is None:
            return
        try:
            await self._documents.update(
                PROFILES_COLLECTION, self._identity.uid, {"xp": self._record.xp}
            )
        except Exception as e:
            remote_write_failures_total.labels(operation="mirror_xp").inc()
            logger.error(f"Failed to mirror XP to profile {self._identity.uid}: {e}", exc_info=True)

    # ============================================
    # Mutators
    # ============================================

    async def add_completed_workout(
        self,
        workout: CompletedWorkout,
        now: Optional[datetime] = None
    ) -> WorkoutOutcome:
        """
        Log a finished workout

        Updates the streak, rolls missions over on a week boundary, applies
        the workout to mission progress and pays the XP reward of every
        mission it completes. The day counted is `now` (default: the session
        clock), so a backdated workout.date cannot rewind the week or streak.
        """
        if not self._can_mutate():
            logger.debug(f"add_completed_workout ignored in state {self._state.value}")
            return WorkoutOutcome()

        if workout.workout_id and any(
            logged.workout_id == workout.workout_id for logged in self._record.completed_workouts
        ):
            logger.info(f"Duplicate workout submission ignored: {workout.workout_id}")
            return WorkoutOutcome(duplicate=True)

        # Streak day and mission week follow the session clock; workout.date
        # is only what the client reported.
        event_time = now or self._clock()
        if event_time.tzinfo is None:
            event_time = event_time.replace(tzinfo=dt_timezone.utc)
        event_time = event_time.astimezone(self._tz)

        self._record.completed_workouts.append(workout)

        streak_update = update_streak(self._record.streak_state, event_time)
        self._record.streak = streak_update.state.current
        self._record.best_streak = streak_update.state.best
        self._record.last_workout_date = streak_update.state.last_workout_date

        newly_completed: List[Mission] = []
        if self._record.mission_data is not None:
            mission_data, _ = ensure_current_week(self._record.mission_data, event_time)
            update = apply_workout_to_missions(
                WEEKLY_MISSIONS,
                mission_data.progress,
                workout,
                streak_update.current_streak,
            )
            self._record.mission_data = WeeklyMissionState(
                week_id=mission_data.week_id,
                progress=update.updated_progress,
            )
            newly_completed = update.newly_completed

        workouts_logged_total.inc()
        logger.info(
            f"Workout logged: {workout.workout} ({workout.volume} kg). "
            f"Streak {streak_update.old_streak} -> {streak_update.current_streak}"
        )

        fields = {
            "completedWorkouts": [w.to_document() for w in self._record.completed_workouts],
            "streak": self._record.streak,
            "bestStreak": self._record.best_streak,
            "lastWorkoutDate": self._record.last_workout_date.isoformat(),
        }
        if self._record.mission_data is not None:
            fields["missionData"] = self._record.mission_data.to_document()
        await self._persist("add_completed_workout", fields)

        grants: List[XPGrant] = []
        for mission in newly_completed:
            missions_completed_total.labels(mission_id=mission.id.value).inc()
            grant = await self.add_xp(mission.xp_reward, reason=mission.name, source="mission")
            if grant is not None:
                grants.append(grant)

        return WorkoutOutcome(
            streak_update=streak_update,
            newly_completed=newly_completed,
            xp_grants=grants,
        )

    async def add_xp(
        self,
        amount: int,
        reason: Optional[str] = None,
        source: str = "manual"
    ) -> Optional[XPGrant]:
        """
        Grant XP with the current streak bonus

        Mission rewards skip the bonus when COMPOUND_STREAK_BONUS is off.

        Returns:
            The grant, or None when the session is not READY

        Raises:
            ValidationError: If amount is negative
        """
        if self._state != SessionState.READY:
            logger.debug(f"add_xp ignored in state {self._state.value}")
            return None

        apply_bonus = source != "mission" or config.COMPOUND_STREAK_BONUS
        grant = grant_xp(
            self._record.xp,
            amount,
            self._record.streak,
            reason=reason,
            apply_streak_bonus=apply_bonus,
        )
        self._record.xp = grant.new_total
        xp_granted_total.labels(source=source).inc(grant.xp_awarded)
        self.notify(format_xp_notification(grant))

        await self._persist("add_xp", {"xp": self._record.xp})
        await self._mirror_profile_xp()
        return grant

    async def add_detailed_workout_log(self, log: DetailedWorkoutLog) -> None:
        if not self._can_mutate():
            return
        self._record.detailed_workout_logs.append(log)
        await self._persist(
            "add_detailed_workout_log",
            {"detailedWorkoutLogs": [entry.to_document() for entry in self._record.detailed_workout_logs]},
        )

    async def save_workout_routine(self, routine: WorkoutRoutine) -> None:
        if not self._can_mutate():
            return
        self._record.workout_routine = routine
        await self._persist("save_workout_routine", {"workoutRoutine": routine.to_document()})

    async def clear_workout_progress(self) -> None:
        """Drop both workout logs; used when a new training cycle begins"""
        if not self._can_mutate():
            return
        self._record.completed_workouts = []
        self._record.detailed_workout_logs = []
        await self._persist(
            "clear_workout_progress",
            {"completedWorkouts": [], "detailedWorkoutLogs": []},
        )

    async def set_onboarding_complete(self, complete: bool) -> None:
        if not self._can_mutate():
            return
        self._record.onboarding_complete = complete
        await self._persist("set_onboarding_complete", {"onboardingComplete": complete})
        await self._ensure_mission_state()

    async def add_pending_feedback(self, exercise_name: str) -> None:
        if not self._can_mutate():
            return
        if exercise_name in self._record.pending_feedback:
            return
        self._record.pending_feedback.append(exercise_name)
        await self._persist("add_pending_feedback", {"pendingFeedback": self._record.pending_feedback})

    async def remove_pending_feedback(self, exercise_name: str) -> None:
        if not self._can_mutate():
            return
        self._record.pending_feedback = [
            name for name in self._record.pending_feedback if name != exercise_name
        ]
        await self._persist("remove_pending_feedback", {"pendingFeedback": self._record.pending_feedback})

    async def set_initial_diamonds(self, amount: int) -> None:
        if not self._can_mutate():
            return
        self._record.diamonds = max(amount, 0)
        await self._persist("set_initial_diamonds", {"diamonds": self._record.diamonds})

    async def consume_diamonds(self, amount: int) -> int:
        """Spend diamonds, flooring the balance at zero; returns the new balance"""
        if not self._can_mutate():
            return self._record.diamonds
        self._record.diamonds = diamond_ledger.consume_diamonds(self._record.diamonds, amount)
        await self._persist("consume_diamonds", {"diamonds": self._record.diamonds})
        return self._record.diamonds

    async def add_diamonds(self, amount: int) -> int:
        if not self._can_mutate():
            return self._record.diamonds
        self._record.diamonds = diamond_ledger.add_diamonds(self._record.diamonds, amount)
        await self._persist("add_diamonds", {"diamonds": self._record.diamonds})
        return self._record.diamonds

    async def update_trivia_history(self, items: List[TriviaHistoryItem]) -> None:
        if not self._can_mutate():
            return
        self._record.trivia_history.extend(items)
        await self._persist(
            "update_trivia_history",
            {"triviaHistory": [item.to_document() for item in self._record.trivia_history]},
        )

    async def update_quiz_history(self, items: List[QuizHistoryItem]) -> None:
        if not self._can_mutate():
            return
        self._record.quiz_history.extend(items)
        await self._persist(
            "update_quiz_history",
            {"quizHistory": [item.to_document() for item in self._record.quiz_history]},
        )

    async def reset_all_data(self) -> None:
        """
        Delete the user's record and profile

        The live subscription sees the deletion and re-seeds defaults.
        """
        if self._state == SessionState.ANONYMOUS or self._identity is None:
            self._record = UserRecord()
            return

        uid = self._identity.uid
        try:
            await self._documents.delete(PROFILES_COLLECTION, uid)
            await self._documents.delete(USERS_COLLECTION, uid)
            logger.info(f"All data reset for {uid}")
        except Exception as e:
            remote_write_failures_total.labels(operation="reset_all_data").inc()
            logger.error(f"Failed to reset data for {uid}: {e}", exc_info=True)
            self.notify(Notification(
                title="Reset failed",
                description="Your data could not be reset. Please try again.",
                variant="destructive",
            ))

    # ============================================
    # Leaderboard
    # ============================================

    async def get_leaderboard(
        self,
        user_id: Optional[str] = None,
        size: int = config.LEADERBOARD_SIZE
    ) -> Leaderboard:
        """
        Top users by XP plus the requesting user's rank

        A failed query notifies the user and yields an empty leaderboard.
        """
        if user_id is None:
            user_id = self._identity.uid if self._identity else ""

        try:
            documents = await self._documents.query_top(PROFILES_COLLECTION, "xp", None)
            ranked = [UserProfile.model_validate(document) for document in documents]
        except Exception as e:
            logger.error(f"Leaderboard query failed: {e}", exc_info=True)
            self.notify(Notification(
                title="Leaderboard unavailable",
                description="Could not load the leaderboard. Please try again later.",
                variant="destructive",
            ))
            return Leaderboard()

        return build_leaderboard(ranked, user_id, size=size)
