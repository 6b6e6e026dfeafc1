"""Learning memory models"""
from datetime import datetime
from typing import Any, List
from pydantic import BaseModel, Field, field_validator


class MemoryEntry(BaseModel):
    """Something worth remembering about a student's learning"""
    id: str
    entry_type: str  # learning_session, quiz_result, achievement_unlocked, ...
    content: dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    importance: float = 0.5
    timestamp: datetime

    @field_validator("importance", mode="before")
    @classmethod
    def clamp_importance(cls, value):
        return min(1.0, max(0.0, float(value)))


class LearningPattern(BaseModel):
    """Derived pattern, one per pattern type"""
    pattern_type: str  # performance_trend, time_preference
    data: dict[str, Any] = Field(default_factory=dict)
    confidence: float = 0.5
    last_updated: datetime
