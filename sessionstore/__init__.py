"""Durable SQL-backed session record store"""

from sessionstore.core.config import Settings
from sessionstore.core.exceptions import (
    ConnectionUnavailable,
    ConstraintViolation,
    DuplicateKey,
    EncodingError,
    SchemaInitializationError,
    SessionStoreError,
    StorageError,
)
from sessionstore.core.schemas.session import SessionRecord
from sessionstore.core.utils.codec import RecordCodec
from sessionstore.core.utils.encryption import PayloadEncryption
from sessionstore.core.utils.maintenance import continuously_purge_expired, start_purge_task
from sessionstore.core.utils.memory_store import MemorySessionStore
from sessionstore.core.utils.session_store import SessionStore, SqlSessionStore, generate_session_id
from sessionstore.db.init_db import SchemaManager
from sessionstore.db.session import ConnectionPool, create_pool_engine

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "SessionStoreError",
    "ConnectionUnavailable",
    "ConstraintViolation",
    "DuplicateKey",
    "EncodingError",
    "StorageError",
    "SchemaInitializationError",
    "SessionRecord",
    "RecordCodec",
    "PayloadEncryption",
    "SessionStore",
    "SqlSessionStore",
    "MemorySessionStore",
    "generate_session_id",
    "SchemaManager",
    "ConnectionPool",
    "create_pool_engine",
    "continuously_purge_expired",
    "start_purge_task",
]
