"""
Gamification system for LearnifyAchieve

This module implements the student motivation rules:
- Points and leveling
- Daily login streaks
- Achievement evaluation and progress
- Quiz scoring and leaderboard ranking
"""

from src.gamification.level_system import (
    calculate_level,
    calculate_level_progress,
    points_for_level,
    points_for_next_level,
)
from src.gamification.streak_system import calculate_streak_update, apply_login, streak_status
from src.gamification.achievement_system import (
    aggregate_attempt_stats,
    evaluate_achievements,
    calculate_achievement_progress,
    categorize_achievements,
)
from src.gamification.quiz_scoring import calculate_score, score_quiz_attempt
from src.gamification.leaderboard import rank_students

__all__ = [
    "calculate_level",
    "calculate_level_progress",
    "points_for_level",
    "points_for_next_level",
    "calculate_streak_update",
    "apply_login",
    "streak_status",
    "aggregate_attempt_stats",
    "evaluate_achievements",
    "calculate_achievement_progress",
    "categorize_achievements",
    "calculate_score",
    "score_quiz_attempt",
    "rank_students",
]
