"""Persistence backends for the key-value port."""

from borderwatch.core.config import Settings
from borderwatch.core.logging import get_logger
from borderwatch.domain.ports import KeyValueStore, StorageError
from borderwatch.infrastructure.storage.flat_file import FlatFileStore
from borderwatch.infrastructure.storage.memory import InMemoryStore

logger = get_logger(__name__)


async def build_store(settings: Settings) -> KeyValueStore:
    """
    Create the backend selected by ``STORAGE_BACKEND``.

    The database backend creates its tables here. An unreachable database
    is logged and the store is still returned; its operations then fail
    with StorageError and callers fall back to empty lists.
    """
    if settings.storage_backend == "memory":
        return InMemoryStore()
    if settings.storage_backend == "database":
        from sqlalchemy.exc import SQLAlchemyError

        from borderwatch.infrastructure.db import SqlKeyValueStore, get_session_factory, init_db

        try:
            await init_db()
        except (SQLAlchemyError, OSError) as e:
            logger.error("database_init_failed", error=str(e))
        return SqlKeyValueStore(get_session_factory())
    return FlatFileStore(settings.storage_path)


__all__ = [
    "FlatFileStore",
    "InMemoryStore",
    "KeyValueStore",
    "StorageError",
    "build_store",
]
