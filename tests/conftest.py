"""Global test fixtures and utilities for LearnifyAchieve tests"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, date, timedelta, timezone

from src.db.repository import InMemoryGamificationRepository
from src.memory.learning_memory import MemoryBank
from src.models.achievement import AchievementDefinition
from src.models.quiz import QuizAttemptSummary
from src.models.student import StudentStats


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    return cursor


@pytest.fixture
def mock_db_connection(mock_db_cursor):
    """Mock database connection whose cursor() yields mock_db_cursor"""
    conn = AsyncMock()
    conn.cursor = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = mock_db_cursor
    conn.commit = AsyncMock()
    return conn


@pytest.fixture
def mock_database(mock_db_connection):
    """Mock Database whose connection() yields mock_db_connection"""
    database = MagicMock()
    database.connection.return_value.__aenter__.return_value = mock_db_connection
    return database


# ============================================================================
# Student Fixtures
# ============================================================================

@pytest.fixture
def test_student_id():
    """Standard test student ID"""
    return "student-123"


@pytest.fixture
def student_stats(test_student_id):
    """Fresh student with no activity"""
    return StudentStats(student_id=test_student_id, name="Test Student")


@pytest.fixture
def fixed_now():
    """Fixed 'now' for deterministic time-based tests"""
    return datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_attempt(fixed_now):
    """Factory for quiz attempts"""
    def _make(
        score=80,
        correct_answers=8,
        total_questions=10,
        time_taken_seconds=120,
        completed_at=None,
        difficulty=None,
        points_earned=None,
        quiz_id="quiz-1",
    ):
        return QuizAttemptSummary(
            quiz_id=quiz_id,
            score=score,
            correct_answers=correct_answers,
            total_questions=total_questions,
            time_taken_seconds=time_taken_seconds,
            completed_at=completed_at or fixed_now,
            difficulty=difficulty,
            points_earned=correct_answers * 10 if points_earned is None else points_earned,
        )
    return _make


# ============================================================================
# Achievement Fixtures
# ============================================================================

@pytest.fixture
def achievement_catalog():
    """Small catalog covering the common requirement types"""
    return [
        AchievementDefinition(
            id="first-quiz",
            name="First Steps",
            description="Complete your first quiz",
            badge_icon="🎯",
            requirement={"type": "quiz_count", "target": 1},
            points_reward=50,
        ),
        AchievementDefinition(
            id="quiz-master",
            name="Quiz Master",
            description="Complete 5 quizzes",
            badge_icon="📚",
            requirement={"type": "quiz_count", "target": 5},
            points_reward=100,
        ),
        AchievementDefinition(
            id="perfectionist",
            name="Perfectionist",
            description="Score 100% on a quiz",
            badge_icon="💯",
            requirement={"type": "perfect_score", "target": 100},
            points_reward=75,
        ),
        AchievementDefinition(
            id="week-streak",
            name="Week Warrior",
            description="Log in 7 days in a row",
            badge_icon="🔥",
            requirement={"type": "daily_streak", "target": 7},
            points_reward=100,
        ),
        AchievementDefinition(
            id="points-200",
            name="Point Collector",
            description="Earn 200 points",
            badge_icon="⭐",
            requirement={"type": "total_points", "target": 200},
            points_reward=25,
        ),
    ]


@pytest.fixture
def repository(achievement_catalog, student_stats):
    """In-memory repository with one student and the test catalog"""
    repo = InMemoryGamificationRepository(achievements=achievement_catalog)
    repo.add_student(student_stats)
    return repo


@pytest.fixture
def memory_bank(fixed_now):
    """Memory bank with a frozen clock"""
    return MemoryBank(tz="UTC", clock=lambda: fixed_now)


@pytest.fixture
def consecutive_days():
    """Seven consecutive dates starting 2024-01-01"""
    return [date(2024, 1, 1) + timedelta(days=i) for i in range(7)]
