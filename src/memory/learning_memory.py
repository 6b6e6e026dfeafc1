"""
Learning memory bank

Keeps a short history of what a student did (quiz results, study sessions,
unlocked achievements) plus derived patterns, and turns them into study
insights. One LearningMemory belongs to one student; it is passed to the
services that record into it instead of being reached through global state.
"""

import logging
from datetime import datetime, timedelta
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import uuid4
from zoneinfo import ZoneInfo

from src.config import MEMORY_LIMIT
from src.models.memory import LearningPattern, MemoryEntry
from src.utils.datetime_helpers import get_timezone, now_utc

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)

DEFAULT_INSIGHTS = [
    "Keep studying consistently to build meaningful learning patterns!",
    "Your learning journey is just beginning. Every session counts!",
]


def _by_importance_then_recency(a: MemoryEntry, b: MemoryEntry) -> int:
    # Importance wins only when it differs noticeably
    importance_diff = b.importance - a.importance
    if abs(importance_diff) > 0.1:
        return 1 if importance_diff > 0 else -1
    if a.timestamp == b.timestamp:
        return 0
    return 1 if b.timestamp > a.timestamp else -1


def _time_of_day(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"


class LearningMemory:
    """Per-student memory entries and learning patterns"""

    def __init__(
        self,
        student_id: str,
        limit: int = MEMORY_LIMIT,
        tz: Optional[Union[str, ZoneInfo]] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.student_id = student_id
        self.limit = limit
        self.tz = get_timezone(tz)
        self._clock = clock
        self.memories: List[MemoryEntry] = []  # newest first
        self.patterns: List[LearningPattern] = []

    def add_memory(
        self,
        entry_type: str,
        content: Dict[str, Any],
        tags: Optional[List[str]] = None,
        importance: float = 0.5
    ) -> MemoryEntry:
        """Add an entry; the oldest entries beyond the limit are dropped"""
        entry = MemoryEntry(
            id=str(uuid4()),
            entry_type=entry_type,
            content=content,
            tags=tags or [],
            importance=importance,
            timestamp=self._clock(),
        )
        self.memories.insert(0, entry)
        del self.memories[self.limit:]
        return entry

    def update_pattern(
        self,
        pattern_type: str,
        data: Dict[str, Any],
        confidence: float = 0.5
    ) -> LearningPattern:
        """Replace the pattern of this type (or add it)"""
        pattern = LearningPattern(
            pattern_type=pattern_type,
            data=data,
            confidence=confidence,
            last_updated=self._clock(),
        )
        for index, existing in enumerate(self.patterns):
            if existing.pattern_type == pattern_type:
                self.patterns[index] = pattern
                break
        else:
            self.patterns.append(pattern)
        return pattern

    def get_pattern(self, pattern_type: str) -> Optional[LearningPattern]:
        return next((p for p in self.patterns if p.pattern_type == pattern_type), None)

    def get_relevant_memories(
        self,
        tags: Optional[List[str]] = None,
        limit: int = 10
    ) -> List[MemoryEntry]:
        """
        Memories matching any of `tags` (all memories when no tags given),
        most important first, then most recent
        """
        filtered = self.memories
        if tags:
            filtered = [m for m in filtered if any(tag in m.tags for tag in tags)]
        return sorted(filtered, key=cmp_to_key(_by_importance_then_recency))[:limit]

    def _recent(self, entry_type: str) -> List[MemoryEntry]:
        cutoff = self._clock() - RECENT_WINDOW
        return [m for m in self.memories if m.entry_type == entry_type and m.timestamp >= cutoff]

    def record_learning_session(
        self,
        activity_type: str,
        performance: Dict[str, Any],
        duration: int
    ) -> MemoryEntry:
        """
        Record a study session and refresh derived patterns

        Args:
            activity_type: e.g. 'quiz'
            performance: Must carry 'score' as a fraction (0-1)
            duration: Session length in seconds
        """
        score = performance.get("score", 0) or 0
        now = self._clock()

        entry = self.add_memory(
            "learning_session",
            {
                "activity_type": activity_type,
                "performance": performance,
                "duration": duration,
            },
            [activity_type, "session", "good_performance" if score > 0.7 else "needs_improvement"],
            0.8 if score > 0.8 else 0.5,
        )

        recent_sessions = self._recent("learning_session")
        if len(recent_sessions) >= 2:
            scores = [s.content.get("performance", {}).get("score", 0) or 0 for s in recent_sessions]
            trend = "stable"
            if len(scores) >= 3:
                # scores are newest first
                if scores[0] > scores[-1]:
                    trend = "improving"
                elif scores[0] < scores[-1]:
                    trend = "declining"

            self.update_pattern(
                "performance_trend",
                {
                    "average_score": sum(scores) / len(scores),
                    "trend": trend,
                    "activity_type": activity_type,
                    "session_count": len(recent_sessions),
                },
                0.7,
            )

        hour = now.astimezone(self.tz).hour
        self.update_pattern(
            "time_preference",
            {
                "preferred_time": _time_of_day(hour),
                "last_session_hour": hour,
                "performance": score,
            },
            0.6,
        )

        logger.debug(f"Recorded {activity_type} session for student {self.student_id} (score {score:.2f})")
        return entry

    def generate_insights(self) -> List[str]:
        """Study advice derived from sessions, achievements and patterns"""
        insights = []

        sessions = [m for m in self.memories if m.entry_type == "learning_session"]
        if len(sessions) >= 3:
            average = sum(
                (s.content.get("performance", {}).get("score", 0) or 0) for s in sessions
            ) / len(sessions)

            if average > 0.8:
                insights.append(
                    "You're performing exceptionally well! Consider increasing difficulty to maintain challenge."
                )
            elif average < 0.6:
                insights.append(
                    "Consider taking shorter breaks between sessions or reducing difficulty slightly."
                )

            hours = [s.timestamp.astimezone(self.tz).hour for s in sessions]
            morning = sum(1 for h in hours if 6 <= h <= 11)
            afternoon = sum(1 for h in hours if 12 <= h <= 17)
            evening = sum(1 for h in hours if h >= 18 or h <= 5)
            busiest = max(morning, afternoon, evening)

            if busiest == morning and morning > len(hours) * 0.4:
                insights.append(
                    "You tend to perform better during morning sessions. Consider scheduling more morning study time."
                )
            elif busiest == evening and evening > len(hours) * 0.4:
                insights.append("Evening study sessions work well for you. You might be a night learner!")

        if len(self._recent("achievement_unlocked")) >= 2:
            insights.append(
                "Great momentum! You've unlocked multiple achievements recently. Keep up the consistency!"
            )

        trend_pattern = self.get_pattern("performance_trend")
        if trend_pattern and trend_pattern.confidence > 0.6:
            trend = trend_pattern.data.get("trend")
            if trend == "improving":
                insights.append("Your performance shows a clear improvement trend. You're on the right track!")
            elif trend == "declining":
                insights.append("Consider adjusting your study approach or taking a short break to avoid burnout.")

        return insights or list(DEFAULT_INSIGHTS)


class MemoryBank:
    """Hands out one LearningMemory per student (kept in process)"""

    def __init__(
        self,
        limit: int = MEMORY_LIMIT,
        tz: Optional[Union[str, ZoneInfo]] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.limit = limit
        self.tz = tz
        self.clock = clock
        self._memories: Dict[str, LearningMemory] = {}

    def for_student(self, student_id: str) -> LearningMemory:
        memory = self._memories.get(student_id)
        if memory is None:
            memory = LearningMemory(student_id, limit=self.limit, tz=self.tz, clock=self.clock)
            self._memories[student_id] = memory
        return memory
