"""Points leaderboard"""

from typing import Iterable, List, Optional

from src.config import LEADERBOARD_SIZE
from src.gamification.level_system import calculate_level
from src.models.student import LeaderboardEntry, StudentStats


def rank_students(
    students: Iterable[StudentStats],
    limit: Optional[int] = LEADERBOARD_SIZE
) -> List[LeaderboardEntry]:
    """
    Rank students by total points (highest first)

    Ties are ordered by student ID so the ranking is stable. Levels are
    recomputed from points rather than trusted from storage.
    """
    ordered = sorted(students, key=lambda s: (-s.total_points, s.student_id))
    if limit is not None:
        ordered = ordered[:limit]

    return [
        LeaderboardEntry(
            rank=index + 1,
            student_id=student.student_id,
            name=student.name,
            total_points=student.total_points,
            level=calculate_level(student.total_points),
            current_streak=student.current_streak,
        )
        for index, student in enumerate(ordered)
    ]


def find_student_rank(entries: Iterable[LeaderboardEntry], student_id: str) -> Optional[int]:
    """Rank of a student on the board, or None if not listed"""
    for entry in entries:
        if entry.student_id == student_id:
            return entry.rank
    return None
