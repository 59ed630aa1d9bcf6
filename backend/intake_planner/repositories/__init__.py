"""Storage backends. The backend is picked once per process by build_storage()."""
import logging

from intake_planner.config import Settings
from intake_planner.errors import NotConfiguredError
from intake_planner.repositories.base import Repositories, Storage
from intake_planner.repositories.memory import InMemoryStore, MemoryStorage

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> Storage:
    backend = settings.resolved_storage_backend
    if backend == "database":
        if not settings.database_url.strip():
            raise NotConfiguredError("DATABASE_URL is required for the database storage backend")
        from intake_planner.database import create_engine
        from intake_planner.repositories.sql import SqlStorage

        logger.info("Using database storage backend")
        return SqlStorage(create_engine(settings.database_url, echo=settings.database_echo))
    logger.info("Using in-memory storage backend")
    return MemoryStorage(InMemoryStore())


__all__ = ["InMemoryStore", "MemoryStorage", "Repositories", "Storage", "build_storage"]
