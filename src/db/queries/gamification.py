"""Gamification database queries (PostgreSQL repository)"""
import json
import logging
from datetime import datetime, time
from typing import List, Optional, Set, Union
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from src.db.connection import Database
from src.exceptions import RecordNotFoundError
from src.gamification.level_system import calculate_level
from src.models.achievement import AchievementDefinition
from src.models.quiz import QuizAttemptSummary
from src.models.student import StudentStats, StudentStatsUpdate
from src.utils.datetime_helpers import get_timezone

logger = logging.getLogger(__name__)

# StudentStatsUpdate field -> students column
_STATS_COLUMNS = {
    "total_points": "total_points",
    "level": "level",
    "current_streak": "current_streak",
    "last_login_date": "last_login",
}


class PostgresGamificationRepository:
    """Repository over the hosted backend tables"""

    def __init__(self, database: Database, tz: Optional[Union[str, ZoneInfo]] = None):
        self.db = database
        self.tz = get_timezone(tz)

    # ==========================================
    # Students
    # ==========================================

    async def get_student_stats(self, student_id: str) -> StudentStats:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT id, name, total_points, level, current_streak, last_login
                    FROM students
                    WHERE id = %s
                    """,
                    (student_id,)
                )
                row = await cur.fetchone()

        if not row:
            raise RecordNotFoundError(
                f"Student {student_id} not found",
                record_type="Student",
                record_id=student_id,
                student_id=student_id,
                operation="get_student_stats",
            )
        return self._row_to_stats(row)

    async def update_student_stats(self, student_id: str, update: StudentStatsUpdate) -> None:
        """
        Update the student's gamification counters

        Only fields set on `update` are written.
        """
        values = update.model_dump(exclude_none=True)
        if not values:
            return

        if "last_login_date" in values:
            # Stored as a timestamp; local midnight keeps the calendar day intact
            values["last_login_date"] = datetime.combine(
                values["last_login_date"], time.min, tzinfo=self.tz
            )

        assignments = ", ".join(f"{_STATS_COLUMNS[field]} = %s" for field in values)
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    UPDATE students
                    SET {assignments},
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = %s
                    """,
                    (*values.values(), student_id)
                )
            await conn.commit()

    async def add_student_points(self, student_id: str, points: int) -> int:
        """
        Add points relative to the stored total and store the matching level

        Both statements run in one transaction; the row lock taken by the
        first keeps concurrent increments from interleaving.

        Returns:
            The new total
        """
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE students
                    SET total_points = COALESCE(total_points, 0) + %s,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = %s
                    RETURNING total_points
                    """,
                    (points, student_id)
                )
                row = await cur.fetchone()
                if not row:
                    raise RecordNotFoundError(
                        f"Student {student_id} not found",
                        record_type="Student",
                        record_id=student_id,
                        student_id=student_id,
                        operation="add_student_points",
                    )

                total = row["total_points"]
                await cur.execute(
                    "UPDATE students SET level = %s WHERE id = %s",
                    (calculate_level(total), student_id)
                )
            await conn.commit()

        return total

    async def list_student_stats(self, limit: Optional[int] = None) -> List[StudentStats]:
        """Students ordered by total points, highest first"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT id, name, total_points, level, current_streak, last_login
                    FROM students
                    ORDER BY total_points DESC NULLS LAST, id
                    LIMIT %s
                    """,
                    (limit,)
                )
                rows = await cur.fetchall()
        return [self._row_to_stats(row) for row in rows]

    def _row_to_stats(self, row: dict) -> StudentStats:
        last_login = row.get("last_login")
        if isinstance(last_login, datetime):
            last_login = last_login.astimezone(self.tz).date()
        return StudentStats(
            student_id=str(row["id"]),
            name=row.get("name"),
            total_points=row.get("total_points"),
            level=row.get("level"),
            current_streak=row.get("current_streak"),
            last_login_date=last_login,
        )

    # ==========================================
    # Quiz attempts
    # ==========================================

    async def list_quiz_attempts(self, student_id: str) -> List[QuizAttemptSummary]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT a.quiz_id, a.score, a.correct_answers, a.total_questions,
                           a.time_taken, a.points_earned, a.completed_at, q.difficulty
                    FROM user_quiz_attempts a
                    LEFT JOIN quizzes q ON q.id = a.quiz_id
                    WHERE a.student_id = %s
                    ORDER BY a.completed_at
                    """,
                    (student_id,)
                )
                rows = await cur.fetchall()

        return [
            QuizAttemptSummary(
                quiz_id=str(row["quiz_id"]) if row["quiz_id"] else None,
                score=row["score"],
                correct_answers=row["correct_answers"],
                total_questions=row["total_questions"],
                time_taken_seconds=row["time_taken"],
                points_earned=row["points_earned"],
                completed_at=row["completed_at"],
                difficulty=row["difficulty"],
            )
            for row in rows
            if row["completed_at"] is not None
        ]

    async def insert_quiz_attempt(self, student_id: str, attempt: QuizAttemptSummary) -> None:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO user_quiz_attempts
                        (student_id, quiz_id, score, correct_answers, total_questions,
                         time_taken, points_earned, completed_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        student_id,
                        attempt.quiz_id,
                        attempt.score,
                        attempt.correct_answers,
                        attempt.total_questions,
                        attempt.time_taken_seconds,
                        attempt.points_earned,
                        attempt.completed_at,
                    )
                )
            await conn.commit()

    # ==========================================
    # Achievements
    # ==========================================

    async def list_achievement_definitions(self) -> List[AchievementDefinition]:
        """
        Get all achievement definitions in catalog order

        Rows whose requirements payload is not a known requirement are skipped.
        """
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT id, name, description, badge_icon, requirements, points_reward
                    FROM achievements
                    ORDER BY created_at, id
                    """
                )
                rows = await cur.fetchall()

        definitions = []
        for row in rows:
            row = dict(row)
            if isinstance(row.get("requirements"), str):
                row["requirements"] = json.loads(row["requirements"])
            try:
                definitions.append(AchievementDefinition.from_record(row))
            except PydanticValidationError as e:
                logger.warning(f"Skipping achievement {row.get('id')} with invalid requirements: {e}")
        return definitions

    async def list_earned_achievement_ids(self, student_id: str) -> Set[str]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT achievement_id
                    FROM user_achievements
                    WHERE student_id = %s
                    """,
                    (student_id,)
                )
                rows = await cur.fetchall()
        return {str(row["achievement_id"]) for row in rows}

    async def insert_user_achievement(self, student_id: str, achievement_id: str) -> bool:
        """
        Record an earned achievement

        Returns:
            True if inserted, False if the student already had it
        """
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO user_achievements (student_id, achievement_id)
                    VALUES (%s, %s)
                    ON CONFLICT (student_id, achievement_id) DO NOTHING
                    RETURNING id
                    """,
                    (student_id, achievement_id)
                )
                result = await cur.fetchone()
            await conn.commit()

        if result is None:
            logger.debug(f"Achievement {achievement_id} already recorded for student {student_id}")
            return False
        return True

    async def delete_user_achievement(self, student_id: str, achievement_id: str) -> None:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    DELETE FROM user_achievements
                    WHERE student_id = %s AND achievement_id = %s
                    """,
                    (student_id, achievement_id)
                )
            await conn.commit()
