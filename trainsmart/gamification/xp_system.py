"""
XP Ledger

XP is a single, monotonically increasing score used for ranking. Every grant
carries a streak bonus of STREAK_BONUS_PER_DAY XP per streak day on top of the
base amount.

XP Award Rules:
- Manual grants (games, feedback): caller-defined amount + streak bonus
- Weekly mission completion: mission reward + streak bonus
  (compounding onto mission payouts is controlled by COMPOUND_STREAK_BONUS)
"""

from dataclasses import dataclass
from typing import Optional
import logging

from trainsmart import config
from trainsmart.exceptions import ValidationError
from trainsmart.models.user import Notification

logger = logging.getLogger(__name__)


def calculate_streak_bonus(streak: int) -> int:
    """Bonus XP for the current streak (flat per streak day)"""
    return max(streak, 0) * config.STREAK_BONUS_PER_DAY


@dataclass
class XPGrant:
    """Outcome of a single XP grant"""
    amount: int
    bonus: int
    old_total: int
    new_total: int
    reason: Optional[str]
    message: str

    @property
    def xp_awarded(self) -> int:
        return self.amount + self.bonus


def grant_xp(
    current_xp: int,
    amount: int,
    streak: int,
    reason: Optional[str] = None,
    apply_streak_bonus: bool = True
) -> XPGrant:
    """
    Add XP to a ledger total

    Args:
        current_xp: Ledger total before the grant
        amount: Base XP to award
        streak: Current streak, used for the bonus
        reason: Human-readable reason, shown in the notification
        apply_streak_bonus: Whether to add the streak bonus

    Returns:
        XPGrant with the new total and the notification text

    Raises:
        ValidationError: If amount is negative (XP is never decremented)
    """
    if amount < 0:
        raise ValidationError("XP amount must not be negative", field="amount", value=amount)

    bonus = calculate_streak_bonus(streak) if apply_streak_bonus else 0
    new_total = current_xp + amount + bonus

    message = f"+{amount} XP"
    if bonus > 0:
        message += f" (+{bonus} streak bonus)"
    if reason:
        message += f" for {reason}"

    logger.info(f"XP granted: {amount} + {bonus} bonus ({reason or 'no reason'}). Total: {new_total}")

    return XPGrant(
        amount=amount,
        bonus=bonus,
        old_total=current_xp,
        new_total=new_total,
        reason=reason,
        message=message,
    )


def format_xp_notification(grant: XPGrant) -> Notification:
    """Toast announcing an XP grant"""
    return Notification(title=f"⭐ {grant.xp_awarded} XP earned!", description=grant.message)
