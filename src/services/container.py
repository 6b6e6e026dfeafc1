"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
from zoneinfo import ZoneInfo
import logging

from src.db.repository import GamificationRepository
from src.memory.learning_memory import MemoryBank

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (repository, memory_bank) are injected.
    """

    # Infrastructure dependencies (injected)
    repository: GamificationRepository
    memory_bank: Optional[MemoryBank] = None
    tz: Optional[Union[str, ZoneInfo]] = None

    # Services (lazy-loaded via properties)
    _gamification_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def gamification_service(self):
        """Get GamificationService instance (lazy-loaded)"""
        if self._gamification_service is None:
            from src.services.gamification_service import GamificationService
            self._gamification_service = GamificationService(
                self.repository,
                memory_bank=self.memory_bank,
                tz=self.tz
            )
            logger.debug("GamificationService instantiated")
        return self._gamification_service
