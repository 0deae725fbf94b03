"""
Gamification system for TrainSmart

This module implements the workout motivation layer:
- Workout streaks
- Weekly missions
- XP and diamond ledgers
- Global leaderboard
"""

from trainsmart.gamification.streak_system import compute_streak, update_streak
from trainsmart.gamification.missions import (
    WEEKLY_MISSIONS,
    apply_workout_to_missions,
    ensure_current_week,
    get_mission,
    week_id_for,
)
from trainsmart.gamification.xp_system import grant_xp, calculate_streak_bonus
from trainsmart.gamification.diamonds import add_diamonds, consume_diamonds
from trainsmart.gamification.leaderboard import Leaderboard, build_leaderboard

__all__ = [
    "compute_streak",
    "update_streak",
    "WEEKLY_MISSIONS",
    "apply_workout_to_missions",
    "ensure_current_week",
    "get_mission",
    "week_id_for",
    "grant_xp",
    "calculate_streak_bonus",
    "add_diamonds",
    "consume_diamonds",
    "Leaderboard",
    "build_leaderboard",
]
