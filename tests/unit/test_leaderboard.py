"""Unit tests for leaderboard ranking (src/gamification/leaderboard.py)"""
from src.gamification.leaderboard import find_student_rank, rank_students
from src.models.student import StudentStats


def _students():
    return [
        StudentStats(student_id="c", name="Cleo", total_points=150, level=9),
        StudentStats(student_id="a", name="Ari", total_points=420),
        StudentStats(student_id="b", name="Bo", total_points=150),
        StudentStats(student_id="d", name="Dee", total_points=0),
    ]


def test_rank_students_orders_by_points():
    entries = rank_students(_students())

    assert [e.student_id for e in entries] == ["a", "b", "c", "d"]
    assert [e.rank for e in entries] == [1, 2, 3, 4]


def test_rank_students_recomputes_level():
    """Test stored levels are not trusted"""
    entries = rank_students(_students())
    cleo = next(e for e in entries if e.student_id == "c")

    assert cleo.level == 2


def test_rank_students_limit():
    entries = rank_students(_students(), limit=2)

    assert len(entries) == 2
    assert find_student_rank(entries, "a") == 1
    assert find_student_rank(entries, "d") is None
