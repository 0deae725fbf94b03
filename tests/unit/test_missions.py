"""Unit tests for weekly missions (trainsmart/gamification/missions.py)"""
import pytest
from datetime import date, datetime, timezone

from trainsmart.exceptions import RecordNotFoundError
from trainsmart.gamification.missions import (
    WEEKLY_MISSIONS,
    apply_workout_to_missions,
    ensure_current_week,
    get_mission,
    mission_completion_ratio,
    new_weekly_state,
    week_id_for,
)
from trainsmart.models.mission import MissionId, MissionKind, MissionProgress, WeeklyMissionState
from trainsmart.models.workout import CompletedWorkout


NOW = datetime(2024, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


def _workout(volume=0.0):
    return CompletedWorkout(date=NOW, workout="Full Body", duration=45, volume=volume)


# ============================================================================
# Catalog Tests
# ============================================================================

class TestCatalog:
    """Mission catalog lookups"""

    def test_catalog_ids_are_unique(self):
        ids = [mission.id for mission in WEEKLY_MISSIONS]
        assert len(ids) == len(set(ids))

    def test_catalog_goals_positive(self):
        assert all(mission.goal > 0 for mission in WEEKLY_MISSIONS)

    def test_get_mission_by_enum_and_string(self):
        by_enum = get_mission(MissionId.LIFT_10000_KG)
        by_str = get_mission("lift_10000_kg")

        assert by_enum == by_str
        assert by_enum.kind == MissionKind.TOTAL_VOLUME
        assert by_enum.xp_reward == 150

    def test_get_mission_unknown_raises(self):
        with pytest.raises(RecordNotFoundError):
            get_mission("run_a_marathon")


# ============================================================================
# Week Tests
# ============================================================================

class TestWeeks:
    """Week ids and weekly resets"""

    @pytest.mark.parametrize("day,expected", [
        (date(2024, 1, 8), "2024-01-08"),   # Monday
        (date(2024, 1, 10), "2024-01-08"),  # Wednesday
        (date(2024, 1, 14), "2024-01-08"),  # Sunday
        (date(2024, 1, 15), "2024-01-15"),  # next Monday
        (date(2024, 1, 3), "2024-01-01"),   # across a month
    ])
    def test_week_id_is_monday(self, day, expected):
        assert week_id_for(day) == expected

    def test_week_id_accepts_datetime(self):
        assert week_id_for(NOW) == "2024-01-08"

    def test_new_weekly_state_covers_catalog(self):
        state = new_weekly_state(NOW)

        assert state.week_id == "2024-01-08"
        assert set(state.progress) == {mission.id.value for mission in WEEKLY_MISSIONS}
        assert all(entry.current == 0 and not entry.completed for entry in state.progress.values())

    def test_ensure_current_week_keeps_current_state(self):
        state = new_weekly_state(NOW)
        state.progress["complete_3_workouts"].current = 2

        result, reset = ensure_current_week(state, NOW)

        assert reset is False
        assert result.progress["complete_3_workouts"].current == 2

    def test_ensure_current_week_resets_stale_state(self):
        stale = WeeklyMissionState(
            week_id="2024-01-01",
            progress={"complete_3_workouts": MissionProgress(current=3, completed=True)},
        )

        result, reset = ensure_current_week(stale, NOW)

        assert reset is True
        assert result.week_id == "2024-01-08"
        assert result.progress["complete_3_workouts"].completed is False

    def test_ensure_current_week_creates_missing_state(self):
        result, reset = ensure_current_week(None, NOW)

        assert reset is True
        assert result.week_id == "2024-01-08"


# ============================================================================
# Progress Tests
# ============================================================================

class TestApplyWorkout:
    """Applying a workout to mission progress"""

    def test_counts_workouts_and_volume(self):
        progress = new_weekly_state(NOW).progress

        update = apply_workout_to_missions(WEEKLY_MISSIONS, progress, _workout(2500), new_streak=1)

        assert update.updated_progress["complete_3_workouts"].current == 1
        assert update.updated_progress["complete_5_workouts"].current == 1
        assert update.updated_progress["lift_10000_kg"].current == 2500
        assert update.updated_progress["reach_3_day_streak"].current == 1
        assert update.newly_completed == []

    def test_does_not_modify_input(self):
        progress = new_weekly_state(NOW).progress

        apply_workout_to_missions(WEEKLY_MISSIONS, progress, _workout(100), new_streak=1)

        assert progress["lift_10000_kg"].current == 0

    def test_volume_mission_completes_on_crossing_goal(self):
        progress = new_weekly_state(NOW).progress
        progress["lift_10000_kg"] = MissionProgress(current=7000)

        update = apply_workout_to_missions(WEEKLY_MISSIONS, progress, _workout(4000), new_streak=1)

        lift = update.updated_progress["lift_10000_kg"]
        assert lift.current == 11000
        assert lift.completed is True
        assert get_mission("lift_10000_kg") in update.newly_completed

    def test_completed_mission_is_skipped(self):
        progress = new_weekly_state(NOW).progress
        progress["complete_3_workouts"] = MissionProgress(current=3, completed=True)

        update = apply_workout_to_missions(WEEKLY_MISSIONS, progress, _workout(), new_streak=1)

        assert update.updated_progress["complete_3_workouts"].current == 3
        assert get_mission("complete_3_workouts") not in update.newly_completed

    def test_streak_mission_tracks_best_streak(self):
        progress = new_weekly_state(NOW).progress
        progress["reach_3_day_streak"] = MissionProgress(current=2)

        update = apply_workout_to_missions(WEEKLY_MISSIONS, progress, _workout(), new_streak=1)

        assert update.updated_progress["reach_3_day_streak"].current == 2

    def test_streak_mission_completes(self):
        progress = new_weekly_state(NOW).progress

        update = apply_workout_to_missions(WEEKLY_MISSIONS, progress, _workout(), new_streak=3)

        assert update.updated_progress["reach_3_day_streak"].completed is True
        assert [m.id for m in update.newly_completed] == [MissionId.REACH_3_DAY_STREAK]

    def test_missing_entry_is_created(self):
        update = apply_workout_to_missions(WEEKLY_MISSIONS, {}, _workout(10), new_streak=1)

        assert set(update.updated_progress) == {mission.id.value for mission in WEEKLY_MISSIONS}


def test_completion_ratio():
    mission = get_mission("lift_10000_kg")

    assert mission_completion_ratio(mission, None) == 0.0
    assert mission_completion_ratio(mission, MissionProgress(current=2500)) == 0.25
    assert mission_completion_ratio(mission, MissionProgress(current=20000)) == 1.0
    assert mission_completion_ratio(mission, MissionProgress(current=0, completed=True)) == 1.0
