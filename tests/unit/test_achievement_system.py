"""Unit tests for Achievement System (src/gamification/achievement_system.py)"""
import pytest
from datetime import datetime, timedelta, timezone

from src.gamification.achievement_system import (
    aggregate_attempt_stats,
    calculate_achievement_progress,
    categorize_achievements,
    describe_requirement,
    evaluate_achievements,
    format_achievement_unlock_message,
    is_requirement_met,
)
from src.models.achievement import AchievementAward, AchievementDefinition, parse_requirement
from src.models.quiz import QuizDifficulty
from src.models.student import StudentStats


def _definition(achievement_id, requirement, points_reward=10):
    return AchievementDefinition(
        id=achievement_id,
        name=achievement_id.replace("-", " ").title(),
        requirement=requirement,
        points_reward=points_reward,
    )


# ============================================================================
# Aggregation Tests
# ============================================================================

def test_aggregate_attempt_stats(make_attempt, fixed_now):
    attempts = [
        make_attempt(score=100, correct_answers=10, time_taken_seconds=45,
                     difficulty=QuizDifficulty.EASY),
        make_attempt(score=60, correct_answers=6, time_taken_seconds=0,
                     completed_at=fixed_now + timedelta(days=1), difficulty=QuizDifficulty.EASY),
        make_attempt(score=90, correct_answers=9, time_taken_seconds=200,
                     completed_at=fixed_now + timedelta(hours=2), difficulty=QuizDifficulty.HARD),
    ]

    aggregates = aggregate_attempt_stats(attempts, tz="UTC")

    assert aggregates.quiz_count == 3
    assert aggregates.perfect_count == 1
    assert aggregates.total_correct == 25
    assert aggregates.different_days == 2
    assert aggregates.fastest_time == 45
    assert aggregates.highest_score == 100
    assert aggregates.completion_hours == {10, 12}
    assert aggregates.difficulty_counts == {QuizDifficulty.EASY: 2, QuizDifficulty.HARD: 1}


def test_aggregate_attempt_stats_empty():
    aggregates = aggregate_attempt_stats([])

    assert aggregates.quiz_count == 0
    assert aggregates.fastest_time == 0
    assert aggregates.highest_score == 0


# ============================================================================
# Requirement Predicate Tests
# ============================================================================

@pytest.mark.parametrize("requirement,met", [
    ({"type": "quiz_count", "target": 2}, True),
    ({"type": "quiz_count", "target": 3}, False),
    ({"type": "perfect_count", "target": 1}, True),
    ({"type": "correct_answers", "target": 16}, True),
    ({"type": "correct_answers", "target": 17}, False),
    ({"type": "different_days", "target": 1}, True),
    ({"type": "different_days", "target": 2}, False),
    ({"type": "daily_streak", "target": 3}, True),
    ({"type": "daily_streak", "target": 4}, False),
    ({"type": "total_points", "target": 250}, True),
    ({"type": "total_points", "target": 251}, False),
    ({"type": "quick_completion", "target": 60}, True),
    ({"type": "quick_completion", "target": 30}, False),
    ({"type": "perfect_score", "target": 100}, True),
    ({"type": "accuracy_score", "target": 90}, True),
    ({"type": "early_completion", "target": 11}, True),
    ({"type": "early_completion", "target": 10}, False),
    ({"type": "late_completion", "target": 10}, True),
    ({"type": "late_completion", "target": 11}, False),
    ({"type": "difficulty_count", "target": 1, "difficulty": "medium"}, True),
    ({"type": "difficulty_count", "target": 1, "difficulty": "hard"}, False),
    ({"type": "all_difficulties"}, False),
])
def test_is_requirement_met(requirement, met, make_attempt):
    """Test each requirement type against two attempts completed at 10:00 UTC"""
    attempts = [
        make_attempt(score=100, correct_answers=10, time_taken_seconds=50,
                     difficulty=QuizDifficulty.MEDIUM),
        make_attempt(score=60, correct_answers=6, time_taken_seconds=300,
                     difficulty=QuizDifficulty.EASY),
    ]
    stats = StudentStats(student_id="s1", total_points=250, current_streak=3)
    aggregates = aggregate_attempt_stats(attempts, tz="UTC")

    assert is_requirement_met(parse_requirement(requirement), stats, aggregates) is met


def test_score_requirements_need_an_attempt():
    """Test score-based requirements are never met without attempts"""
    stats = StudentStats(student_id="s1")
    aggregates = aggregate_attempt_stats([])

    assert not is_requirement_met(parse_requirement({"type": "accuracy_score", "target": 0}), stats, aggregates)
    assert not is_requirement_met(parse_requirement({"type": "quick_completion", "target": 999}), stats, aggregates)


def test_all_difficulties_met(make_attempt):
    attempts = [make_attempt(difficulty=d) for d in QuizDifficulty]
    aggregates = aggregate_attempt_stats(attempts)

    assert is_requirement_met(
        parse_requirement({"type": "all_difficulties"}), StudentStats(student_id="s1"), aggregates
    )


def test_completion_hours_use_calendar_timezone(make_attempt):
    """Test early/late completion read the hour in the given timezone"""
    # 10:00 UTC is 05:00 in New York
    aggregates = aggregate_attempt_stats([make_attempt()], tz="America/New_York")
    requirement = parse_requirement({"type": "early_completion", "target": 6})

    assert is_requirement_met(requirement, StudentStats(student_id="s1"), aggregates)


# ============================================================================
# Evaluation Tests
# ============================================================================

def test_evaluate_five_attempts_returns_quiz_count_once(make_attempt):
    """Test a quiz_count target of 5 is returned exactly once for five attempts"""
    catalog = [_definition("five-quizzes", {"type": "quiz_count", "target": 5}, 100)]
    stats = StudentStats(student_id="s1")
    attempts = [make_attempt() for _ in range(5)]

    awards = evaluate_achievements(stats, attempts, catalog, set())

    assert awards == [AchievementAward(achievement_id="five-quizzes", name="Five Quizzes", points_reward=100)]


def test_evaluate_skips_earned(make_attempt):
    catalog = [_definition("first", {"type": "quiz_count", "target": 1})]

    awards = evaluate_achievements(StudentStats(student_id="s1"), [make_attempt()], catalog, {"first"})

    assert awards == []


def test_evaluate_catalog_order(make_attempt):
    """Test simultaneous awards come back in catalog order"""
    catalog = [
        _definition("b-second", {"type": "quiz_count", "target": 1}),
        _definition("a-first", {"type": "perfect_score", "target": 100}),
        _definition("c-locked", {"type": "quiz_count", "target": 2}),
    ]

    awards = evaluate_achievements(
        StudentStats(student_id="s1"), [make_attempt(score=100, correct_answers=10)], catalog, set()
    )

    assert [a.achievement_id for a in awards] == ["b-second", "a-first"]


def test_evaluate_does_not_apply_rewards():
    """Test rewards are not added to the stats being checked"""
    catalog = [
        _definition("streak", {"type": "daily_streak", "target": 1}, points_reward=500),
        _definition("points", {"type": "total_points", "target": 100}),
    ]
    stats = StudentStats(student_id="s1", current_streak=1)

    awards = evaluate_achievements(stats, [], catalog, set())

    assert [a.achievement_id for a in awards] == ["streak"]
    assert stats.total_points == 0


def test_evaluate_duplicate_catalog_ids(make_attempt):
    """Test a catalog listing an ID twice awards it once"""
    definition = _definition("first", {"type": "quiz_count", "target": 1})

    awards = evaluate_achievements(StudentStats(student_id="s1"), [make_attempt()], [definition, definition], set())

    assert len(awards) == 1


# ============================================================================
# Progress & Display Tests
# ============================================================================

def test_calculate_achievement_progress_threshold(make_attempt):
    definition = _definition("ten", {"type": "quiz_count", "target": 10})
    aggregates = aggregate_attempt_stats([make_attempt() for _ in range(3)])

    progress = calculate_achievement_progress(definition, StudentStats(student_id="s1"), aggregates)

    assert progress == {"current": 3, "required": 10, "percentage": 30, "description": "3/10"}


def test_calculate_achievement_progress_capped(make_attempt):
    definition = _definition("one", {"type": "quiz_count", "target": 1})
    aggregates = aggregate_attempt_stats([make_attempt(), make_attempt()])

    progress = calculate_achievement_progress(definition, StudentStats(student_id="s1"), aggregates)

    assert progress["percentage"] == 100


def test_calculate_achievement_progress_binary():
    definition = _definition("fast", {"type": "quick_completion", "target": 60})

    progress = calculate_achievement_progress(
        definition, StudentStats(student_id="s1"), aggregate_attempt_stats([])
    )

    assert progress["current"] == 0
    assert progress["required"] == 1


def test_categorize_achievements(make_attempt):
    catalog = [
        _definition("earned", {"type": "quiz_count", "target": 1}),
        _definition("near", {"type": "quiz_count", "target": 3}),
        _definition("far", {"type": "quiz_count", "target": 20}),
        _definition("locked", {"type": "daily_streak", "target": 7}),
    ]
    aggregates = aggregate_attempt_stats([make_attempt(), make_attempt()])

    categories = categorize_achievements(catalog, {"earned"}, StudentStats(student_id="s1"), aggregates)

    assert [e["achievement"].id for e in categories["earned"]] == ["earned"]
    assert [e["achievement"].id for e in categories["in_progress"]] == ["near", "far"]
    assert [e["achievement"].id for e in categories["locked"]] == ["locked"]


@pytest.mark.parametrize("requirement,text", [
    ({"type": "quiz_count", "target": 1000}, "Complete 1,000 quizzes"),
    ({"type": "quick_completion", "target": 120}, "Complete a quiz in under 2 minutes"),
    ({"type": "quick_completion", "target": 45}, "Complete a quiz in under 45 seconds"),
    ({"type": "daily_streak", "target": 7}, "Maintain a 7-day streak"),
    ({"type": "early_completion", "target": 8}, "Complete a quiz before 8:00"),
    ({"type": "difficulty_count", "target": 3, "difficulty": "hard"}, "Complete 3 hard quizzes"),
    ({"type": "all_difficulties"}, "Complete quizzes in all difficulty levels"),
])
def test_describe_requirement(requirement, text):
    assert describe_requirement(parse_requirement(requirement)) == text


def test_format_achievement_unlock_message():
    award = AchievementAward(achievement_id="a", name="First Steps", points_reward=50)

    assert format_achievement_unlock_message(award) == "🏆 Achievement Unlocked: First Steps! (+50 pts)"
