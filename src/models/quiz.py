"""Quiz attempt models"""
from enum import Enum
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from src.utils.datetime_helpers import ensure_utc


class QuizDifficulty(str, Enum):
    """Quiz difficulty levels"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuizAttemptSummary(BaseModel):
    """A submitted quiz attempt (immutable once recorded)"""
    model_config = {"frozen": True}

    quiz_id: Optional[str] = None
    score: int  # 0-100
    correct_answers: int
    total_questions: int
    time_taken_seconds: int = 0
    completed_at: datetime
    difficulty: Optional[QuizDifficulty] = None
    points_earned: int = 0

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value):
        return min(100, max(0, int(round(value or 0))))

    @field_validator("correct_answers", "time_taken_seconds", "points_earned", mode="before")
    @classmethod
    def clamp_non_negative(cls, value):
        if value is None:
            return 0
        return max(0, int(value))

    @field_validator("total_questions", mode="before")
    @classmethod
    def clamp_total_questions(cls, value):
        return max(1, int(value or 1))

    @field_validator("completed_at", mode="after")
    @classmethod
    def completed_at_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def accuracy(self) -> float:
        """Fraction of questions answered correctly"""
        return min(1.0, self.correct_answers / self.total_questions)
