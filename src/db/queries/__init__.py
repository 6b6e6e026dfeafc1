"""
Database queries

- gamification.py: students, quiz attempts, achievements (PostgreSQL repository)
"""

from src.db.queries.gamification import PostgresGamificationRepository

__all__ = [
    "PostgresGamificationRepository",
]
