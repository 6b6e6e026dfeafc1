"""Main entry point for the LearnifyAchieve gamification engine"""
import logging
import asyncio
from src.config import validate_config, LOG_LEVEL, DATABASE_URL, DEFAULT_TIMEZONE
from src.db.connection import Database
from src.db.queries import PostgresGamificationRepository
from src.memory.learning_memory import MemoryBank
from src.services.container import ServiceContainer

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging"""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, level.upper())
    )


def build_container(database: Database) -> ServiceContainer:
    """Wire the repository and services over an initialized database"""
    return ServiceContainer(
        repository=PostgresGamificationRepository(database, tz=DEFAULT_TIMEZONE),
        memory_bank=MemoryBank(tz=DEFAULT_TIMEZONE),
        tz=DEFAULT_TIMEZONE,
    )


async def main() -> None:
    """Main application entry point: verify the backend and print the leaderboard"""
    database = Database(DATABASE_URL)
    try:
        # Validate configuration
        logger.info("Validating configuration...")
        validate_config()

        # Initialize database
        logger.info("Initializing database connection pool...")
        await database.init_pool()

        container = build_container(database)
        leaderboard = await container.gamification_service.get_leaderboard()

        logger.info(f"Gamification engine ready ({len(leaderboard)} students on leaderboard)")
        for entry in leaderboard:
            logger.info(
                f"#{entry.rank} {entry.name or entry.student_id} - "
                f"{entry.total_points} pts (level {entry.level})"
            )

    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Closing database connection...")
        await database.close_pool()

        logger.info("Shutdown complete")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
