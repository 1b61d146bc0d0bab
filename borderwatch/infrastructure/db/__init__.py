"""Database infrastructure package."""

from borderwatch.infrastructure.db.models import Base, KeyValueEntryDB
from borderwatch.infrastructure.db.repository import KeyValueRepository, SqlKeyValueStore
from borderwatch.infrastructure.db.session import (
    close_db,
    get_session_factory,
    init_db,
)

__all__ = [
    # Models
    "Base",
    "KeyValueEntryDB",
    # Repositories
    "KeyValueRepository",
    "SqlKeyValueStore",
    # Session
    "close_db",
    "get_session_factory",
    "init_db",
]
