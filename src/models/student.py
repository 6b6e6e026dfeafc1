"""Student-related Pydantic models"""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from src.utils.datetime_helpers import to_local_date


def _clamp_non_negative(value) -> int:
    if value is None:
        return 0
    return max(0, int(value))


class StudentStats(BaseModel):
    """Gamification counters stored on the student record"""
    student_id: str
    name: Optional[str] = None
    total_points: int = 0
    level: int = 1
    current_streak: int = 0
    last_login_date: Optional[date] = None

    @field_validator("total_points", "current_streak", mode="before")
    @classmethod
    def clamp_counters(cls, value):
        return _clamp_non_negative(value)

    @field_validator("level", mode="before")
    @classmethod
    def clamp_level(cls, value):
        if value is None:
            return 1
        return max(1, int(value))

    @field_validator("last_login_date", mode="before")
    @classmethod
    def login_timestamp_to_date(cls, value):
        # Backend stores the full login timestamp
        if isinstance(value, datetime):
            return to_local_date(value)
        return value


class StudentStatsUpdate(BaseModel):
    """Partial update; fields left as None are not written"""
    total_points: Optional[int] = None
    level: Optional[int] = None
    current_streak: Optional[int] = None
    last_login_date: Optional[date] = None

    @field_validator("total_points", "current_streak", mode="before")
    @classmethod
    def clamp_counters(cls, value):
        if value is None:
            return None
        return _clamp_non_negative(value)


class LeaderboardEntry(BaseModel):
    """One row of the points leaderboard"""
    rank: int
    student_id: str
    name: Optional[str] = None
    total_points: int
    level: int
    current_streak: int = 0
