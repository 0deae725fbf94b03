"""Global XP leaderboard"""
import logging
from typing import List, Optional, Sequence
from pydantic import BaseModel, Field

from trainsmart.models.user import UserProfile

logger = logging.getLogger(__name__)


class Leaderboard(BaseModel):
    """Top users plus the requesting user's own position"""
    top_users: List[UserProfile] = Field(default_factory=list)
    current_user_profile: Optional[UserProfile] = None
    current_user_rank: Optional[int] = None


def build_leaderboard(
    ranked_profiles: Sequence[UserProfile],
    user_id: str,
    size: int = 10
) -> Leaderboard:
    """
    Build a leaderboard from profiles already ordered by XP descending

    Args:
        ranked_profiles: Every profile, highest XP first (ties in stable order)
        user_id: The requesting user
        size: Number of top users to include

    Returns:
        Leaderboard with a 1-based rank, or rank None if the user has no profile
    """
    current_profile = None
    current_rank = None

    for position, profile in enumerate(ranked_profiles, start=1):
        if profile.uid == user_id:
            current_profile = profile
            current_rank = position
            break

    return Leaderboard(
        top_users=list(ranked_profiles[:size]),
        current_user_profile=current_profile,
        current_user_rank=current_rank,
    )

