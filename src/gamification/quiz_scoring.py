"""
Quiz Scoring

Turns a finished quiz into an attempt record:
- score: percentage of correct answers, rounded half up
- points_earned: correct answers * points per question
"""

from datetime import datetime
from typing import Optional

from src.exceptions import ValidationError
from src.models.quiz import QuizAttemptSummary, QuizDifficulty
from src.utils.datetime_helpers import now_utc

DEFAULT_POINTS_PER_QUESTION = 10


def calculate_score(correct_answers: int, total_questions: int) -> int:
    """Percentage score (0-100), rounded half up"""
    if total_questions < 1:
        raise ValidationError(
            "Quiz must have at least one question",
            field="total_questions",
            value=total_questions,
        )
    correct = min(max(0, correct_answers), total_questions)
    return (correct * 200 + total_questions) // (2 * total_questions)


def score_quiz_attempt(
    correct_answers: int,
    total_questions: int,
    points_per_question: Optional[int] = None,
    time_taken_seconds: int = 0,
    completed_at: Optional[datetime] = None,
    quiz_id: Optional[str] = None,
    difficulty: Optional[QuizDifficulty] = None,
) -> QuizAttemptSummary:
    """
    Score a submitted quiz

    Args:
        correct_answers: Number of questions answered correctly (capped at total)
        total_questions: Number of questions in the quiz (must be >= 1)
        points_per_question: Points per correct answer (defaults to 10)
        time_taken_seconds: Time spent; negative values count as 0
        completed_at: Submission time (defaults to now)
        quiz_id: Quiz identifier
        difficulty: Quiz difficulty, if known

    Returns:
        QuizAttemptSummary ready to be recorded
    """
    score = calculate_score(correct_answers, total_questions)
    correct = min(max(0, correct_answers), total_questions)

    if points_per_question is None:
        points_per_question = DEFAULT_POINTS_PER_QUESTION

    return QuizAttemptSummary(
        quiz_id=quiz_id,
        score=score,
        correct_answers=correct,
        total_questions=total_questions,
        time_taken_seconds=time_taken_seconds,
        completed_at=completed_at or now_utc(),
        difficulty=difficulty,
        points_earned=correct * max(0, points_per_question),
    )
