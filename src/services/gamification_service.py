"""
GamificationService - Gamification Business Logic

Handles points, levels, login streaks and achievements for quiz activity.
All reads and writes go through the injected repository.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Set, Tuple, Union
from zoneinfo import ZoneInfo

from src.exceptions import EvaluationUnavailableError, LearnifyError, wrap_external_exception
from src.gamification.achievement_system import (
    aggregate_attempt_stats,
    categorize_achievements,
    evaluate_achievements,
    format_achievement_unlock_message,
)
from src.gamification.leaderboard import rank_students
from src.gamification.level_system import calculate_level, calculate_level_progress
from src.gamification.streak_system import RESET, apply_login, displayed_streak, streak_status
from src.config import LEADERBOARD_SIZE
from src.db.repository import GamificationRepository
from src.memory.learning_memory import MemoryBank
from src.models.achievement import AchievementAward, AchievementDefinition
from src.models.quiz import QuizAttemptSummary
from src.models.student import LeaderboardEntry, StudentStats, StudentStatsUpdate
from src.utils.datetime_helpers import get_timezone, today_local

logger = logging.getLogger(__name__)

EvaluationInputs = Tuple[StudentStats, List[QuizAttemptSummary], List[AchievementDefinition], Set[str]]


class GamificationService:
    """
    Service for gamification features.

    Responsibilities:
    - Points and level updates after quiz submissions
    - Login streak tracking
    - Achievement checking and awarding
    - Recording activity in the student's learning memory
    """

    def __init__(
        self,
        repository: GamificationRepository,
        memory_bank: Optional[MemoryBank] = None,
        tz: Optional[Union[str, ZoneInfo]] = None
    ):
        """
        Initialize GamificationService.

        Args:
            repository: Persistence collaborator
            memory_bank: Optional learning memory provider
            tz: Timezone for calendar-day rules (defaults to DEFAULT_TIMEZONE)
        """
        self.repository = repository
        self.memory_bank = memory_bank
        self.tz = get_timezone(tz)
        logger.debug("GamificationService initialized")

    async def process_quiz_submission(
        self,
        student_id: str,
        attempt: QuizAttemptSummary
    ) -> Dict[str, Any]:
        """
        Process gamification for a submitted quiz.

        Args:
            student_id: Student ID
            attempt: Scored attempt (see quiz_scoring.score_quiz_attempt)

        Returns:
            {
                'points_awarded': int,  # quiz points + achievement rewards
                'total_points': int,
                'level_up': bool,
                'old_level': int,
                'new_level': int,
                'achievements_unlocked': list[AchievementAward],
                'message': str
            }

        Raises:
            EvaluationUnavailableError: student stats could not be read
            LearnifyError: the attempt or its points could not be stored
        """
        stats = await self._read_stats(student_id, operation="process_quiz_submission")
        old_level = calculate_level(stats.total_points)

        try:
            await self.repository.insert_quiz_attempt(student_id, attempt)
        except Exception as e:
            raise wrap_external_exception(
                e,
                operation="insert_quiz_attempt",
                student_id=student_id,
                context={"quiz_id": attempt.quiz_id},
            ) from e

        stats = await self._add_points(student_id, stats, attempt.points_earned)
        self._record_quiz_memory(student_id, attempt)

        awards, stats = await self._safe_award_achievements(student_id, stats)

        new_level = calculate_level(stats.total_points)
        result = {
            "points_awarded": attempt.points_earned + sum(a.points_reward for a in awards),
            "total_points": stats.total_points,
            "level_up": new_level > old_level,
            "old_level": old_level,
            "new_level": new_level,
            "achievements_unlocked": awards,
        }
        result["message"] = self._build_quiz_message(attempt, result)

        logger.info(
            f"Gamification processed for quiz submission: student={student_id}, "
            f"score={attempt.score}, points={result['points_awarded']}, "
            f"level={new_level}, achievements={len(awards)}"
        )
        return result

    async def process_login(
        self,
        student_id: str,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Apply a login to the student's daily streak.

        Args:
            student_id: Student ID
            today: Login date (defaults to today in the configured timezone)

        Returns:
            {
                'current_streak': int,
                'previous_streak': int,
                'status': str,  # started, unchanged, continued, reset, clock_skew
                'changed': bool,
                'achievements_unlocked': list[AchievementAward],
                'message': str
            }

        Raises:
            EvaluationUnavailableError: student stats could not be read
            LearnifyError: the new streak could not be stored
        """
        if today is None:
            today = today_local(self.tz)

        stats = await self._read_stats(student_id, operation="process_login")
        update = apply_login(stats, today, self.tz)

        if update.changed:
            try:
                await self.repository.update_student_stats(
                    student_id,
                    StudentStatsUpdate(
                        current_streak=update.current_streak,
                        last_login_date=update.last_login_date,
                    ),
                )
            except Exception as e:
                raise wrap_external_exception(
                    e,
                    operation="update_student_stats",
                    student_id=student_id,
                    context={"current_streak": update.current_streak},
                ) from e
            stats = stats.model_copy(update={
                "current_streak": update.current_streak,
                "last_login_date": update.last_login_date,
            })

            if update.status == RESET:
                logger.info(
                    f"Student {student_id} streak reset (was {update.previous_streak} days)"
                )

        awards, stats = await self._safe_award_achievements(student_id, stats)

        logger.info(
            f"Login processed: student={student_id}, streak "
            f"{update.previous_streak} → {update.current_streak} ({update.status})"
        )

        return {
            "current_streak": update.current_streak,
            "previous_streak": update.previous_streak,
            "status": update.status,
            "changed": update.changed,
            "achievements_unlocked": awards,
            "message": update.message,
        }

    async def award_points(self, student_id: str, points: int) -> Optional[StudentStats]:
        """
        Add points to a student and check achievements.

        Non-positive amounts are ignored (returns None).
        """
        if points <= 0:
            return None

        stats = await self._read_stats(student_id, operation="award_points")
        stats = await self._add_points(student_id, stats, points)
        _, stats = await self._safe_award_achievements(student_id, stats)
        return stats

    async def check_and_award_achievements(self, student_id: str) -> List[AchievementAward]:
        """
        Award every achievement the student currently qualifies for.

        Each award is recorded once, then its reward is added to the
        student's points and the level recomputed before the next award.
        Rewards can unlock points milestones, so evaluation repeats until
        nothing new qualifies.

        A failed write skips that achievement only. If its reward cannot be
        stored the record is withdrawn, so it qualifies again on the next
        evaluation. Duplicate records are ignored.

        Raises:
            EvaluationUnavailableError: student data could not be read
        """
        inputs = await self._load_evaluation_inputs(student_id)
        awards, _ = await self._award_achievements(student_id, *inputs)
        return awards

    async def get_student_overview(
        self,
        student_id: str,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Dashboard data for a student.

        Returns:
            {
                'stats': StudentStats,
                'level': dict (see calculate_level_progress),
                'streak': int (broken streaks show as 0),
                'streak_status': str,
                'achievements': {'earned': [...], 'in_progress': [...], 'locked': [...]},
                'earned_count': int,
                'total_achievements': int,
                'completion_percentage': int,
                'insights': list[str]
            }
        """
        if today is None:
            today = today_local(self.tz)

        stats, attempts, catalog, earned_ids = await self._load_evaluation_inputs(student_id)
        aggregates = aggregate_attempt_stats(attempts, self.tz)
        categories = categorize_achievements(catalog, earned_ids, stats, aggregates)
        earned_count = len(categories["earned"])

        insights = []
        if self.memory_bank is not None:
            insights = self.memory_bank.for_student(student_id).generate_insights()

        return {
            "stats": stats,
            "level": calculate_level_progress(stats.total_points),
            "streak": displayed_streak(stats, today, self.tz),
            "streak_status": streak_status(stats, today, self.tz),
            "achievements": categories,
            "earned_count": earned_count,
            "total_achievements": len(catalog),
            "completion_percentage": int(earned_count / len(catalog) * 100) if catalog else 0,
            "insights": insights,
        }

    async def get_leaderboard(self, limit: int = LEADERBOARD_SIZE) -> List[LeaderboardEntry]:
        """Top students by points"""
        try:
            students = await self.repository.list_student_stats(limit)
        except Exception as e:
            raise EvaluationUnavailableError(
                f"Could not load leaderboard: {e}",
                operation="get_leaderboard",
                cause=e,
            ) from e
        return rank_students(students, limit)

    # Private helper methods

    async def _read_stats(self, student_id: str, operation: str) -> StudentStats:
        try:
            return await self.repository.get_student_stats(student_id)
        except Exception as e:
            raise EvaluationUnavailableError(
                f"Could not read stats for student {student_id}: {e}",
                student_id=student_id,
                operation=operation,
                cause=e,
            ) from e

    async def _load_evaluation_inputs(self, student_id: str) -> EvaluationInputs:
        """Read everything evaluation needs; any failure aborts the whole read."""
        try:
            stats = await self.repository.get_student_stats(student_id)
            attempts = await self.repository.list_quiz_attempts(student_id)
            catalog = await self.repository.list_achievement_definitions()
            earned_ids = await self.repository.list_earned_achievement_ids(student_id)
        except Exception as e:
            raise EvaluationUnavailableError(
                f"Could not load gamification data for student {student_id}: {e}",
                student_id=student_id,
                operation="load_evaluation_inputs",
                cause=e,
            ) from e
        return stats, attempts, catalog, set(earned_ids)

    async def _add_points(self, student_id: str, stats: StudentStats, points: int) -> StudentStats:
        """Persist a points increase with its recomputed level."""
        if points <= 0:
            return stats

        try:
            new_total = await self.repository.add_student_points(student_id, points)
        except Exception as e:
            raise wrap_external_exception(
                e,
                operation="add_student_points",
                student_id=student_id,
                context={"points": points},
            ) from e

        new_level = calculate_level(new_total)

        if new_level > stats.level:
            logger.info(f"Student {student_id} leveled up from {stats.level} to {new_level}!")

        return stats.model_copy(update={"total_points": new_total, "level": new_level})

    async def _safe_award_achievements(
        self,
        student_id: str,
        stats: StudentStats
    ) -> Tuple[List[AchievementAward], StudentStats]:
        """
        Achievement pass that never fails the triggering action.

        Unavailable data is logged; awards are retried on the next trigger.
        """
        try:
            _, attempts, catalog, earned_ids = await self._load_evaluation_inputs(student_id)
        except EvaluationUnavailableError as e:
            logger.warning(f"Skipping achievement check for student {student_id}: {e.message}")
            return [], stats

        return await self._award_achievements(student_id, stats, attempts, catalog, earned_ids)

    async def _award_achievements(
        self,
        student_id: str,
        stats: StudentStats,
        attempts: List[QuizAttemptSummary],
        catalog: List[AchievementDefinition],
        earned_ids: Set[str]
    ) -> Tuple[List[AchievementAward], StudentStats]:
        awarded: List[AchievementAward] = []
        # Earned, duplicate or failed this call; never evaluated twice per call
        settled = set(earned_ids)

        while True:
            candidates = evaluate_achievements(stats, attempts, catalog, settled, self.tz)
            if not candidates:
                break

            for award in candidates:
                settled.add(award.achievement_id)

                try:
                    inserted = await self.repository.insert_user_achievement(
                        student_id, award.achievement_id
                    )
                except Exception as e:
                    logger.error(
                        f"Failed to record achievement {award.achievement_id} for student "
                        f"{student_id}; will retry on next evaluation: {e}",
                        exc_info=True,
                    )
                    continue

                if not inserted:
                    # Already recorded by a concurrent evaluation
                    continue

                try:
                    stats = await self._add_points(student_id, stats, award.points_reward)
                except LearnifyError as e:
                    # Reward not stored: withdraw the award so the next evaluation retries it
                    logger.error(
                        f"Failed to add {award.points_reward} points for achievement "
                        f"{award.achievement_id} to student {student_id}: {e.message}"
                    )
                    await self._withdraw_achievement(student_id, award.achievement_id)
                    continue

                awarded.append(award)
                self._record_achievement_memory(student_id, award, stats)

                logger.info(
                    f"Student {student_id} unlocked achievement: {award.name} "
                    f"+{award.points_reward} pts"
                )

        return awarded, stats

    async def _withdraw_achievement(self, student_id: str, achievement_id: str) -> None:
        try:
            await self.repository.delete_user_achievement(student_id, achievement_id)
        except Exception as e:
            logger.error(
                f"Could not withdraw achievement {achievement_id} for student {student_id}; "
                f"it stays recorded without its reward: {e}",
                exc_info=True,
            )

    def _record_quiz_memory(self, student_id: str, attempt: QuizAttemptSummary) -> None:
        if self.memory_bank is None:
            return

        memory = self.memory_bank.for_student(student_id)
        performance = {
            "score": attempt.score / 100,
            "accuracy": attempt.accuracy,
            "time_per_question": attempt.time_taken_seconds / attempt.total_questions,
        }
        memory.record_learning_session("quiz", performance, attempt.time_taken_seconds)
        memory.add_memory(
            "quiz_result",
            {
                "quiz_id": attempt.quiz_id,
                "score": attempt.score,
                "correct_answers": attempt.correct_answers,
                "total_questions": attempt.total_questions,
                "time_taken": attempt.time_taken_seconds,
                "performance": performance,
            },
            ["quiz", "assessment", attempt.difficulty.value if attempt.difficulty else "general"],
            0.8 if performance["score"] > 0.8 else 0.6,
        )

    def _record_achievement_memory(
        self,
        student_id: str,
        award: AchievementAward,
        stats: StudentStats
    ) -> None:
        if self.memory_bank is None:
            return

        self.memory_bank.for_student(student_id).add_memory(
            "achievement_unlocked",
            {
                "achievement_id": award.achievement_id,
                "achievement_name": award.name,
                "points_awarded": award.points_reward,
                "total_points": stats.total_points,
                "level": stats.level,
            },
            ["achievement", "unlock", "gamification"],
            0.9,
        )

    def _build_quiz_message(self, attempt: QuizAttemptSummary, result: Dict[str, Any]) -> str:
        """Build quiz submission message."""
        message_parts = [
            f"You scored {attempt.score}% and earned {attempt.points_earned} points!"
        ]

        if result["level_up"]:
            message_parts.append(f"🎉 Level {result['new_level']}!")

        for award in result["achievements_unlocked"]:
            message_parts.append(format_achievement_unlock_message(award))

        return "\n".join(message_parts)
