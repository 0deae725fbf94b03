"""Unit tests for the XP and diamond ledgers"""
import pytest
from unittest.mock import patch

from trainsmart.exceptions import ValidationError
from trainsmart.gamification.diamonds import add_diamonds, consume_diamonds
from trainsmart.gamification.xp_system import (
    calculate_streak_bonus,
    format_xp_notification,
    grant_xp,
)


# ============================================================================
# Streak Bonus Tests
# ============================================================================

def test_streak_bonus_is_flat_per_day():
    assert calculate_streak_bonus(0) == 0
    assert calculate_streak_bonus(1) == 10
    assert calculate_streak_bonus(7) == 70


def test_streak_bonus_follows_config():
    with patch("trainsmart.gamification.xp_system.config.STREAK_BONUS_PER_DAY", 5):
        assert calculate_streak_bonus(4) == 20


# ============================================================================
# grant_xp Tests
# ============================================================================

def test_grant_xp_adds_bonus():
    grant = grant_xp(current_xp=100, amount=150, streak=3, reason="Lift 10,000 kg")

    assert grant.amount == 150
    assert grant.bonus == 30
    assert grant.xp_awarded == 180
    assert grant.old_total == 100
    assert grant.new_total == 280
    assert grant.message == "+150 XP (+30 streak bonus) for Lift 10,000 kg"


def test_grant_xp_without_streak_has_no_bonus_text():
    grant = grant_xp(current_xp=0, amount=50, streak=0)

    assert grant.new_total == 50
    assert grant.message == "+50 XP"


def test_grant_xp_bonus_can_be_skipped():
    grant = grant_xp(current_xp=0, amount=75, streak=5, apply_streak_bonus=False)

    assert grant.bonus == 0
    assert grant.new_total == 75


def test_grant_xp_zero_amount_still_pays_bonus():
    grant = grant_xp(current_xp=10, amount=0, streak=2)

    assert grant.new_total == 30


def test_grant_xp_rejects_negative_amount():
    with pytest.raises(ValidationError) as exc_info:
        grant_xp(current_xp=100, amount=-1, streak=0)

    assert exc_info.value.field == "amount"


def test_xp_notification():
    grant = grant_xp(current_xp=0, amount=100, streak=2, reason="Complete 3 workouts")

    notification = format_xp_notification(grant)

    assert notification.title == "⭐ 120 XP earned!"
    assert notification.description == grant.message
    assert notification.variant == "default"


# ============================================================================
# Diamond Tests
# ============================================================================

class TestDiamonds:
    """Diamond ledger never goes below zero"""

    def test_consume(self):
        assert consume_diamonds(10, 3) == 7

    def test_consume_exact_balance(self):
        assert consume_diamonds(5, 5) == 0

    def test_over_consumption_floors_at_zero(self):
        assert consume_diamonds(2, 10) == 0

    def test_add(self):
        assert add_diamonds(2, 10) == 12
