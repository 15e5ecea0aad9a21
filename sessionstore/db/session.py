"""
Connection pool adapter.

Wraps a SQLAlchemy ``AsyncEngine`` with a bounded queue pool and translates
driver and pool failures into the session store error taxonomy. Every
acquisition is scoped by ``async with`` so the connection goes back to the
pool on success, error and task cancellation alike.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

from sessionstore.core.exceptions import (
    ConnectionUnavailable,
    ConstraintViolation,
    DuplicateKey,
    SessionStoreError,
    StorageError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_connect_args(database_url: str) -> Dict[str, Any]:
    """Get database-specific connection arguments"""
    if database_url.startswith("sqlite"):
        # aiosqlite runs the sqlite3 connection on its own thread
        return {"check_same_thread": False}
    return {}


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_pool_engine(
    database_url: str,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: float = 30.0,
    pool_pre_ping: bool = True,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create an async engine backed by a bounded connection pool.

    In-memory SQLite has exactly one database per connection, so it shares a
    single connection through StaticPool instead.

    Returns:
        AsyncEngine: Configured engine
    """
    if _is_memory_sqlite(database_url):
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args=get_connect_args(database_url),
            poolclass=StaticPool,
        )

    return create_async_engine(
        database_url,
        echo=echo,
        connect_args=get_connect_args(database_url),
        poolclass=AsyncAdaptedQueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_pre_ping=pool_pre_ping,
    )


# unique_violation
DUPLICATE_KEY_SQLSTATES = {"23505"}
# ER_DUP_ENTRY
DUPLICATE_KEY_MYSQL_CODES = {1062}


def is_duplicate_key_error(error: BaseException) -> bool:
    """True when an insert failed because the primary key is already taken"""
    if not isinstance(error, sa_exc.IntegrityError):
        return False
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in DUPLICATE_KEY_SQLSTATES:
        return True
    if getattr(orig, "sqlite_errorname", None) == "SQLITE_CONSTRAINT_PRIMARYKEY":
        return True
    if str(orig).startswith("UNIQUE constraint failed"):
        return True
    args = getattr(orig, "args", ())
    return bool(args) and args[0] in DUPLICATE_KEY_MYSQL_CODES


def translate_error(error: BaseException) -> SessionStoreError:
    """Map a pool, driver or SQLAlchemy failure onto the store's error taxonomy"""
    if isinstance(error, SessionStoreError):
        return error
    if isinstance(error, sa_exc.TimeoutError):
        return ConnectionUnavailable(f"Connection pool exhausted: {error}")
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return ConnectionUnavailable(f"Database connection dropped: {error.orig}")
    if isinstance(error, sa_exc.OperationalError) and str(error.orig).startswith("no such"):
        # SQLite reports missing tables and columns as OperationalError
        return StorageError(f"Database operation failed: {error.orig}")
    if isinstance(error, (sa_exc.DisconnectionError, sa_exc.InterfaceError, sa_exc.OperationalError)):
        return ConnectionUnavailable(f"Database unavailable: {error}")
    if isinstance(error, OSError):
        return ConnectionUnavailable(f"Database unreachable: {error}")
    if is_duplicate_key_error(error):
        return DuplicateKey(f"Duplicate key: {error.orig}")
    if isinstance(error, sa_exc.IntegrityError):
        return ConstraintViolation(f"Constraint violated: {error.orig}")
    return StorageError(f"Database operation failed: {error}")


class ConnectionPool:
    """Shared, explicitly passed handle on a bounded connection pool."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings) -> "ConnectionPool":
        return cls(
            create_pool_engine(
                settings.DATABASE_URL,
                pool_size=settings.POOL_SIZE,
                max_overflow=settings.MAX_OVERFLOW,
                pool_timeout=settings.POOL_TIMEOUT,
                pool_pre_ping=settings.POOL_PRE_PING,
                echo=settings.ECHO_SQL,
            )
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Acquire a connection for single-statement work.

        Statements run in the connection's implicit transaction and are
        committed by the caller; anything uncommitted is rolled back on release.
        """
        try:
            async with self.engine.connect() as conn:
                yield conn
        except (sa_exc.SQLAlchemyError, OSError) as e:
            raise translate_error(e) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Acquire a connection inside a transaction committed on clean exit"""
        try:
            async with self.engine.begin() as conn:
                yield conn
        except (sa_exc.SQLAlchemyError, OSError) as e:
            raise translate_error(e) from e

    async def with_connection(self, op: Callable[[AsyncConnection], Awaitable[T]]) -> T:
        """Run ``op`` with a pooled connection inside a transaction and return its result"""
        async with self.transaction() as conn:
            return await op(conn)

    def status(self) -> str:
        return self.engine.pool.status()

    def checked_out(self) -> Optional[int]:
        """Number of connections currently checked out, when the pool tracks it"""
        checkedout = getattr(self.engine.pool, "checkedout", None)
        return checkedout() if callable(checkedout) else None

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.debug("Connection pool disposed")
