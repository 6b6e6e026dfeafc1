"""
Service Layer Package

Business logic services sitting between callers (API handlers, jobs) and the
repository layer.

- GamificationService: points, levels, login streaks, achievements, leaderboard
"""

from src.services.container import ServiceContainer
from src.services.gamification_service import GamificationService

__all__ = [
    "ServiceContainer",
    "GamificationService",
]
