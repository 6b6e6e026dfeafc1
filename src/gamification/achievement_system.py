"""
Achievement System

Evaluates achievement requirements against a student's statistics:
- Activity counts (quizzes, perfect scores, correct answers, study days)
- Consistency (login streaks)
- Milestones (total points)
- Performance (fast completions, high scores)
- Habits (early/late completions, difficulty coverage)

Everything here is pure: callers load the data and persist the results
(see GamificationService).
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Union
from zoneinfo import ZoneInfo
import logging

from src.models.achievement import (
    AccuracyScoreRequirement,
    AchievementAward,
    AchievementDefinition,
    AllDifficultiesRequirement,
    CorrectAnswersRequirement,
    DailyStreakRequirement,
    DifferentDaysRequirement,
    DifficultyCountRequirement,
    EarlyCompletionRequirement,
    LateCompletionRequirement,
    PerfectCountRequirement,
    PerfectScoreRequirement,
    QuickCompletionRequirement,
    QuizCountRequirement,
    Requirement,
    TotalPointsRequirement,
)
from src.models.quiz import QuizAttemptSummary, QuizDifficulty
from src.models.student import StudentStats
from src.utils.datetime_helpers import to_local

logger = logging.getLogger(__name__)


@dataclass
class AttemptAggregates:
    """Statistics derived from a student's quiz attempt history"""
    quiz_count: int = 0
    perfect_count: int = 0
    total_correct: int = 0
    different_days: int = 0
    fastest_time: int = 0  # seconds; 0 when no timed attempt exists
    highest_score: int = 0
    completion_hours: Set[int] = field(default_factory=set)
    difficulty_counts: Dict[QuizDifficulty, int] = field(default_factory=dict)


def aggregate_attempt_stats(
    attempts: Iterable[QuizAttemptSummary],
    tz: Optional[Union[str, ZoneInfo]] = None
) -> AttemptAggregates:
    """Fold a student's attempt history into AttemptAggregates"""
    attempts = list(attempts)
    local_times = [to_local(a.completed_at, tz) for a in attempts]
    timed = [a.time_taken_seconds for a in attempts if a.time_taken_seconds > 0]

    return AttemptAggregates(
        quiz_count=len(attempts),
        perfect_count=sum(1 for a in attempts if a.score == 100),
        total_correct=sum(a.correct_answers for a in attempts),
        different_days=len({t.date() for t in local_times}),
        fastest_time=min(timed, default=0),
        highest_score=max((a.score for a in attempts), default=0),
        completion_hours={t.hour for t in local_times},
        difficulty_counts=dict(Counter(a.difficulty for a in attempts if a.difficulty)),
    )


def is_requirement_met(
    requirement: Requirement,
    stats: StudentStats,
    aggregates: AttemptAggregates
) -> bool:
    """Check one requirement against student stats and attempt aggregates"""
    if isinstance(requirement, QuizCountRequirement):
        return aggregates.quiz_count >= requirement.target

    elif isinstance(requirement, PerfectCountRequirement):
        return aggregates.perfect_count >= requirement.target

    elif isinstance(requirement, CorrectAnswersRequirement):
        return aggregates.total_correct >= requirement.target

    elif isinstance(requirement, DifferentDaysRequirement):
        return aggregates.different_days >= requirement.target

    elif isinstance(requirement, DailyStreakRequirement):
        return stats.current_streak >= requirement.target

    elif isinstance(requirement, TotalPointsRequirement):
        return stats.total_points >= requirement.target

    elif isinstance(requirement, QuickCompletionRequirement):
        # fastest_time is 0 when no attempt was timed
        return 0 < aggregates.fastest_time <= requirement.target

    elif isinstance(requirement, (PerfectScoreRequirement, AccuracyScoreRequirement)):
        return aggregates.quiz_count > 0 and aggregates.highest_score >= requirement.target

    elif isinstance(requirement, EarlyCompletionRequirement):
        return any(hour < requirement.target for hour in aggregates.completion_hours)

    elif isinstance(requirement, LateCompletionRequirement):
        return any(hour >= requirement.target for hour in aggregates.completion_hours)

    elif isinstance(requirement, DifficultyCountRequirement):
        return aggregates.difficulty_counts.get(requirement.difficulty, 0) >= requirement.target

    elif isinstance(requirement, AllDifficultiesRequirement):
        return all(aggregates.difficulty_counts.get(d, 0) > 0 for d in QuizDifficulty)

    raise TypeError(f"Unhandled requirement type: {type(requirement).__name__}")


def evaluate_achievements(
    stats: StudentStats,
    attempts: Iterable[QuizAttemptSummary],
    catalog: Iterable[AchievementDefinition],
    earned_ids: Set[str],
    tz: Optional[Union[str, ZoneInfo]] = None
) -> List[AchievementAward]:
    """
    Find achievements the student newly qualifies for

    Definitions are checked in catalog order against the stats as given;
    rewards of the returned achievements are not applied here.

    Args:
        stats: Current student stats
        attempts: Full quiz attempt history
        catalog: All achievement definitions
        earned_ids: Achievement IDs the student already holds
        tz: Timezone for calendar-day rules

    Returns:
        Newly qualifying achievements in catalog order
    """
    aggregates = aggregate_attempt_stats(attempts, tz)
    seen = set(earned_ids)
    awards = []

    for definition in catalog:
        if definition.id in seen:
            continue

        if not is_requirement_met(definition.requirement, stats, aggregates):
            continue

        seen.add(definition.id)
        awards.append(AchievementAward(
            achievement_id=definition.id,
            name=definition.name,
            points_reward=definition.points_reward,
        ))

        logger.debug(
            f"Student {stats.student_id} qualifies for {definition.name} "
            f"({definition.requirement.type}) +{definition.points_reward} pts"
        )

    return awards


# ============================================
# Progress & Display
# ============================================

def calculate_achievement_progress(
    definition: AchievementDefinition,
    stats: StudentStats,
    aggregates: AttemptAggregates
) -> Dict:
    """
    Calculate progress toward an achievement

    Threshold requirements report the running count against the target;
    one-off requirements (fast completion, best score, time of day) report 0/1.

    Returns:
        {
            'current': int,
            'required': int,
            'percentage': int,
            'description': str
        }
    """
    requirement = definition.requirement

    if isinstance(requirement, QuizCountRequirement):
        current, required = aggregates.quiz_count, requirement.target
    elif isinstance(requirement, PerfectCountRequirement):
        current, required = aggregates.perfect_count, requirement.target
    elif isinstance(requirement, CorrectAnswersRequirement):
        current, required = aggregates.total_correct, requirement.target
    elif isinstance(requirement, DifferentDaysRequirement):
        current, required = aggregates.different_days, requirement.target
    elif isinstance(requirement, DailyStreakRequirement):
        current, required = stats.current_streak, requirement.target
    elif isinstance(requirement, TotalPointsRequirement):
        current, required = stats.total_points, requirement.target
    elif isinstance(requirement, DifficultyCountRequirement):
        current = aggregates.difficulty_counts.get(requirement.difficulty, 0)
        required = requirement.target
    elif isinstance(requirement, AllDifficultiesRequirement):
        current = sum(1 for d in QuizDifficulty if aggregates.difficulty_counts.get(d, 0) > 0)
        required = len(QuizDifficulty)
    else:
        current = 1 if is_requirement_met(requirement, stats, aggregates) else 0
        required = 1

    if required > 0:
        percentage = min(100, int(current / required * 100))
    else:
        percentage = 100

    return {
        "current": current,
        "required": required,
        "percentage": percentage,
        "description": f"{current}/{required}",
    }


def categorize_achievements(
    catalog: Iterable[AchievementDefinition],
    earned_ids: Set[str],
    stats: StudentStats,
    aggregates: AttemptAggregates
) -> Dict[str, List[Dict]]:
    """
    Split the catalog into earned, in-progress and locked achievements

    In-progress achievements have some progress but are not yet earned;
    locked ones have none. Each entry carries the definition and its progress.
    """
    categories = {"earned": [], "in_progress": [], "locked": []}

    for definition in catalog:
        progress = calculate_achievement_progress(definition, stats, aggregates)
        entry = {"achievement": definition, "progress": progress}

        if definition.id in earned_ids:
            categories["earned"].append(entry)
        elif progress["current"] > 0:
            categories["in_progress"].append(entry)
        else:
            categories["locked"].append(entry)

    # Closest to completion first
    categories["in_progress"].sort(key=lambda e: e["progress"]["percentage"], reverse=True)
    return categories


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value:,}" if isinstance(value, int) else str(value)


def describe_requirement(requirement: Requirement) -> str:
    """Human-readable text for a requirement"""
    if isinstance(requirement, QuizCountRequirement):
        return f"Complete {_format_number(requirement.target)} quizzes"
    elif isinstance(requirement, QuickCompletionRequirement):
        if requirement.target >= 60:
            return f"Complete a quiz in under {int(requirement.target // 60)} minutes"
        return f"Complete a quiz in under {_format_number(requirement.target)} seconds"
    elif isinstance(requirement, PerfectScoreRequirement):
        return f"Score {_format_number(requirement.target)}% on any quiz"
    elif isinstance(requirement, PerfectCountRequirement):
        return f"Get perfect scores on {_format_number(requirement.target)} quizzes"
    elif isinstance(requirement, CorrectAnswersRequirement):
        return f"Answer {_format_number(requirement.target)} questions correctly"
    elif isinstance(requirement, DifferentDaysRequirement):
        return f"Study on {_format_number(requirement.target)} different days"
    elif isinstance(requirement, DailyStreakRequirement):
        return f"Maintain a {_format_number(requirement.target)}-day streak"
    elif isinstance(requirement, TotalPointsRequirement):
        return f"Earn {_format_number(requirement.target)} total points"
    elif isinstance(requirement, AccuracyScoreRequirement):
        return f"Score {_format_number(requirement.target)}% or higher"
    elif isinstance(requirement, EarlyCompletionRequirement):
        return f"Complete a quiz before {requirement.target}:00"
    elif isinstance(requirement, LateCompletionRequirement):
        return f"Complete a quiz after {requirement.target}:00"
    elif isinstance(requirement, DifficultyCountRequirement):
        return (
            f"Complete {_format_number(requirement.target)} "
            f"{requirement.difficulty.value} quizzes"
        )
    elif isinstance(requirement, AllDifficultiesRequirement):
        return "Complete quizzes in all difficulty levels"

    raise TypeError(f"Unhandled requirement type: {type(requirement).__name__}")


def format_achievement_unlock_message(award: AchievementAward) -> str:
    """Celebration text for a newly earned achievement"""
    return f"🏆 Achievement Unlocked: {award.name}! (+{award.points_reward} pts)"
