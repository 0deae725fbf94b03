"""Unit tests for the leaderboard builder"""
from trainsmart.gamification.leaderboard import build_leaderboard
from trainsmart.models.user import UserProfile


def _profiles(*entries):
    return [UserProfile(uid=uid, display_name=uid.title(), xp=xp) for uid, xp in entries]


def test_rank_is_one_based_position():
    ranked = _profiles(("ana", 900), ("ben", 500), ("cai", 100))

    board = build_leaderboard(ranked, "ben")

    assert board.current_user_rank == 2
    assert board.current_user_profile.uid == "ben"


def test_top_users_truncated_to_size():
    ranked = _profiles(*[(f"user{i}", 100 - i) for i in range(15)])

    board = build_leaderboard(ranked, "user12", size=10)

    assert len(board.top_users) == 10
    assert board.top_users[0].uid == "user0"
    # Rank comes from the full list, not the truncated one
    assert board.current_user_rank == 13


def test_ties_keep_given_order():
    ranked = _profiles(("ana", 300), ("ben", 300))

    assert build_leaderboard(ranked, "ana").current_user_rank == 1
    assert build_leaderboard(ranked, "ben").current_user_rank == 2


def test_user_without_profile_has_no_rank():
    board = build_leaderboard(_profiles(("ana", 10)), "ghost")

    assert board.current_user_rank is None
    assert board.current_user_profile is None
    assert len(board.top_users) == 1


def test_empty_leaderboard():
    board = build_leaderboard([], "ana")

    assert board.top_users == []
    assert board.current_user_rank is None
