"""Achievement models for gamification"""
from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter, field_validator

from src.models.quiz import QuizDifficulty

Target = Union[int, float]


# ==========================================
# Requirement variants (discriminated by `type`)
# ==========================================

class QuizCountRequirement(BaseModel):
    """Complete `target` quizzes"""
    type: Literal["quiz_count"] = "quiz_count"
    target: Target


class PerfectCountRequirement(BaseModel):
    """Score 100% on `target` quizzes"""
    type: Literal["perfect_count"] = "perfect_count"
    target: Target


class CorrectAnswersRequirement(BaseModel):
    """Answer `target` questions correctly across all attempts"""
    type: Literal["correct_answers"] = "correct_answers"
    target: Target


class DifferentDaysRequirement(BaseModel):
    """Complete quizzes on `target` distinct calendar days"""
    type: Literal["different_days"] = "different_days"
    target: Target


class DailyStreakRequirement(BaseModel):
    """Reach a login streak of `target` days"""
    type: Literal["daily_streak"] = "daily_streak"
    target: Target


class TotalPointsRequirement(BaseModel):
    """Accumulate `target` points"""
    type: Literal["total_points"] = "total_points"
    target: Target


class QuickCompletionRequirement(BaseModel):
    """Finish any quiz within `target` seconds"""
    type: Literal["quick_completion"] = "quick_completion"
    target: Target


class PerfectScoreRequirement(BaseModel):
    """Score at least `target` percent on any quiz"""
    type: Literal["perfect_score"] = "perfect_score"
    target: Target = 100


class AccuracyScoreRequirement(BaseModel):
    """Score at least `target` percent on any quiz"""
    type: Literal["accuracy_score"] = "accuracy_score"
    target: Target


class EarlyCompletionRequirement(BaseModel):
    """Finish a quiz before `target` o'clock"""
    type: Literal["early_completion"] = "early_completion"
    target: int = Field(ge=0, le=24)


class LateCompletionRequirement(BaseModel):
    """Finish a quiz at or after `target` o'clock"""
    type: Literal["late_completion"] = "late_completion"
    target: int = Field(ge=0, le=24)


class DifficultyCountRequirement(BaseModel):
    """Complete `target` quizzes of one difficulty"""
    type: Literal["difficulty_count"] = "difficulty_count"
    target: Target
    difficulty: QuizDifficulty


class AllDifficultiesRequirement(BaseModel):
    """Complete at least one quiz of every difficulty"""
    type: Literal["all_difficulties"] = "all_difficulties"


Requirement = Annotated[
    Union[
        QuizCountRequirement,
        PerfectCountRequirement,
        CorrectAnswersRequirement,
        DifferentDaysRequirement,
        DailyStreakRequirement,
        TotalPointsRequirement,
        QuickCompletionRequirement,
        PerfectScoreRequirement,
        AccuracyScoreRequirement,
        EarlyCompletionRequirement,
        LateCompletionRequirement,
        DifficultyCountRequirement,
        AllDifficultiesRequirement,
    ],
    Field(discriminator="type"),
]

requirement_adapter: TypeAdapter = TypeAdapter(Requirement)


def parse_requirement(payload: dict) -> Requirement:
    """Parse a stored requirements payload (raises pydantic.ValidationError)"""
    return requirement_adapter.validate_python(payload)


# ==========================================
# Achievements
# ==========================================

class AchievementDefinition(BaseModel):
    """Achievement definition (catalog entry)"""
    id: str
    name: str
    description: str = ""
    badge_icon: Optional[str] = None
    requirement: Requirement
    points_reward: int = 0

    @field_validator("points_reward", mode="before")
    @classmethod
    def clamp_reward(cls, value):
        if value is None:
            return 0
        return max(0, int(value))

    @classmethod
    def from_record(cls, row: dict) -> "AchievementDefinition":
        """Build from an `achievements` table row (requirements stored as JSON)"""
        return cls(
            id=str(row["id"]),
            name=row["name"],
            description=row.get("description") or "",
            badge_icon=row.get("badge_icon"),
            requirement=row["requirements"],
            points_reward=row.get("points_reward"),
        )


class UserAchievement(BaseModel):
    """Student's earned achievement"""
    student_id: str
    achievement_id: str
    earned_at: datetime


class AchievementAward(BaseModel):
    """Achievement newly earned in an evaluation pass"""
    achievement_id: str
    name: str
    points_reward: int
