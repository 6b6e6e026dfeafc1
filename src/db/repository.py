"""
Gamification repository interface

The engine reads and writes student data only through this interface.
Two implementations ship with the project:
- InMemoryGamificationRepository (this module): tests and local runs
- PostgresGamificationRepository (src/db/queries/gamification.py)
"""

import logging
from typing import Dict, List, Optional, Protocol, Set, Tuple

from src.exceptions import RecordNotFoundError
from src.gamification.level_system import calculate_level
from src.models.achievement import AchievementDefinition, UserAchievement
from src.models.quiz import QuizAttemptSummary
from src.models.student import StudentStats, StudentStatsUpdate
from src.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


class GamificationRepository(Protocol):
    """Persistence collaborator for the gamification engine"""

    async def get_student_stats(self, student_id: str) -> StudentStats:
        ...

    async def list_quiz_attempts(self, student_id: str) -> List[QuizAttemptSummary]:
        ...

    async def list_achievement_definitions(self) -> List[AchievementDefinition]:
        ...

    async def list_earned_achievement_ids(self, student_id: str) -> Set[str]:
        ...

    async def insert_user_achievement(self, student_id: str, achievement_id: str) -> bool:
        """Record an earned achievement; returns False (no-op) on duplicates"""
        ...

    async def delete_user_achievement(self, student_id: str, achievement_id: str) -> None:
        """Withdraw an award whose reward could not be added"""
        ...

    async def update_student_stats(self, student_id: str, update: StudentStatsUpdate) -> None:
        ...

    async def add_student_points(self, student_id: str, points: int) -> int:
        """Atomically add points and store the matching level; returns the new total"""
        ...

    async def insert_quiz_attempt(self, student_id: str, attempt: QuizAttemptSummary) -> None:
        ...

    async def list_student_stats(self, limit: Optional[int] = None) -> List[StudentStats]:
        """Students ordered by total points, highest first"""
        ...


class InMemoryGamificationRepository:
    """Dict-backed repository (not persisted)"""

    def __init__(self, achievements: Optional[List[AchievementDefinition]] = None):
        self._students: Dict[str, StudentStats] = {}
        self._attempts: Dict[str, List[QuizAttemptSummary]] = {}
        self._achievements: List[AchievementDefinition] = list(achievements or [])
        # (student_id, achievement_id) is unique, as in the backend table
        self._user_achievements: Dict[Tuple[str, str], UserAchievement] = {}

    def add_student(self, stats: StudentStats) -> None:
        self._students[stats.student_id] = stats.model_copy()

    def add_achievement(self, definition: AchievementDefinition) -> None:
        self._achievements.append(definition)

    def get_user_achievements(self, student_id: str) -> List[UserAchievement]:
        return [ua for (sid, _), ua in self._user_achievements.items() if sid == student_id]

    async def get_student_stats(self, student_id: str) -> StudentStats:
        stats = self._students.get(student_id)
        if stats is None:
            raise RecordNotFoundError(
                f"Student {student_id} not found",
                record_type="Student",
                record_id=student_id,
                student_id=student_id,
                operation="get_student_stats",
            )
        return stats.model_copy()

    async def list_quiz_attempts(self, student_id: str) -> List[QuizAttemptSummary]:
        return list(self._attempts.get(student_id, []))

    async def list_achievement_definitions(self) -> List[AchievementDefinition]:
        return list(self._achievements)

    async def list_earned_achievement_ids(self, student_id: str) -> Set[str]:
        return {aid for (sid, aid) in self._user_achievements if sid == student_id}

    async def insert_user_achievement(self, student_id: str, achievement_id: str) -> bool:
        key = (student_id, achievement_id)
        if key in self._user_achievements:
            logger.debug(f"Achievement {achievement_id} already recorded for {student_id}")
            return False
        self._user_achievements[key] = UserAchievement(
            student_id=student_id,
            achievement_id=achievement_id,
            earned_at=now_utc(),
        )
        return True

    async def delete_user_achievement(self, student_id: str, achievement_id: str) -> None:
        self._user_achievements.pop((student_id, achievement_id), None)

    async def update_student_stats(self, student_id: str, update: StudentStatsUpdate) -> None:
        stats = await self.get_student_stats(student_id)
        self._students[student_id] = stats.model_copy(update=update.model_dump(exclude_none=True))

    async def add_student_points(self, student_id: str, points: int) -> int:
        stats = await self.get_student_stats(student_id)
        total = stats.total_points + points
        self._students[student_id] = stats.model_copy(
            update={"total_points": total, "level": calculate_level(total)}
        )
        return total

    async def insert_quiz_attempt(self, student_id: str, attempt: QuizAttemptSummary) -> None:
        self._attempts.setdefault(student_id, []).append(attempt)

    async def list_student_stats(self, limit: Optional[int] = None) -> List[StudentStats]:
        ordered = sorted(
            self._students.values(), key=lambda s: (-s.total_points, s.student_id)
        )
        if limit is not None:
            ordered = ordered[:limit]
        return [s.model_copy() for s in ordered]
