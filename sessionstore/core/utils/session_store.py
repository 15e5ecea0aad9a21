"""Server-side session storage on a relational database.

Persists opaque session payloads keyed by store-generated tokens. The
hosting session middleware decides when to load and save; this module only
guarantees the storage contract:

- ``create`` never overwrites another session: ids are random and an id
  collision is retried with a fresh id, a bounded number of times.
- ``save`` is a single upsert statement, so concurrent saves to one id end
  with exactly one writer's ``(data, expiry)`` pair.
- ``load`` filters on expiry inside the query; an expired row is never returned.
- ``purge_expired`` removes every expired row in one statement.
"""
from __future__ import annotations

import abc
import logging
import secrets
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import delete, insert, select

from sessionstore.core.exceptions import ConstraintViolation, DuplicateKey
from sessionstore.core.logging_config import redact_session_id
from sessionstore.core.schemas.session import SessionRecord
from sessionstore.core.utils.codec import BytesLike, RecordCodec
from sessionstore.db.init_db import SchemaManager
from sessionstore.db.models.session_store import build_session_table
from sessionstore.db.session import ConnectionPool

logger = logging.getLogger(__name__)

DEFAULT_ID_BYTES = 16
DEFAULT_MAX_CREATE_ATTEMPTS = 10

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


def generate_session_id(num_bytes: int = DEFAULT_ID_BYTES) -> str:
    """Return an unguessable URL-safe token (16 bytes -> 22 characters)."""
    return secrets.token_urlsafe(num_bytes)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_aware(expiry: datetime) -> datetime:
    if expiry.tzinfo is None:
        raise ValueError("expiry must be a timezone-aware datetime")
    return expiry.astimezone(timezone.utc)


class SessionStore(abc.ABC):
    """Capability interface shared by every session backend."""

    def __init__(
        self,
        *,
        id_generator: Optional[IdGenerator] = None,
        clock: Optional[Clock] = None,
        max_create_attempts: int = DEFAULT_MAX_CREATE_ATTEMPTS,
    ):
        if max_create_attempts < 1:
            raise ValueError("max_create_attempts must be at least 1")
        self.id_generator = id_generator or generate_session_id
        self.clock = clock or utcnow
        self.max_create_attempts = max_create_attempts

    async def create(self, data: BytesLike, expiry: datetime) -> str:
        """
        Store a new session under a freshly generated id.

        Args:
            data: Opaque serialized session state
            expiry: Timezone-aware instant after which the session is dead

        Returns:
            The new session id

        Raises:
            ConstraintViolation: If every attempt collided with an existing id, or
                another constraint rejected the row (not retried)
            ConnectionUnavailable: If no connection could be obtained
        """
        expiry = _require_aware(expiry)
        for attempt in range(1, self.max_create_attempts + 1):
            session_id = self.id_generator()
            if await self._insert_new(session_id, data, expiry):
                return session_id
            logger.warning(
                "Session id collision, retrying with a fresh id",
                extra={"attempt": attempt, "id_prefix": redact_session_id(session_id)},
            )

        logger.error(f"Session id allocation failed after {self.max_create_attempts} attempts")
        raise ConstraintViolation(
            f"Could not allocate a unique session id after {self.max_create_attempts} attempts"
        )

    @abc.abstractmethod
    async def _insert_new(self, session_id: str, data: BytesLike, expiry: datetime) -> bool:
        """Insert a row only if ``session_id`` is unused; False means collision."""

    @abc.abstractmethod
    async def load(self, session_id: str) -> Optional[SessionRecord]:
        """Return the session if it exists and has not expired, else None."""

    @abc.abstractmethod
    async def save(self, session_id: str, data: BytesLike, expiry: datetime) -> None:
        """Insert or fully replace the session under ``session_id``."""

    @abc.abstractmethod
    async def delete(self, session_id: str) -> None:
        """Remove the session; deleting an absent id is a no-op."""

    @abc.abstractmethod
    async def purge_expired(self) -> int:
        """Delete every session whose expiry is at or before now; return the count."""


class SqlSessionStore(SessionStore):
    """SQLAlchemy-backed session store (PostgreSQL, SQLite, MySQL/MariaDB)."""

    SUPPORTED_DIALECTS = ("postgresql", "sqlite", "mysql", "mariadb")

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        schema_name: Optional[str] = "session_store",
        table_name: str = "session",
        codec: Optional[RecordCodec] = None,
        id_generator: Optional[IdGenerator] = None,
        clock: Optional[Clock] = None,
        max_create_attempts: int = DEFAULT_MAX_CREATE_ATTEMPTS,
    ):
        super().__init__(
            id_generator=id_generator,
            clock=clock,
            max_create_attempts=max_create_attempts,
        )
        dialect = pool.dialect_name
        if dialect not in self.SUPPORTED_DIALECTS:
            raise ValueError(f"Unsupported database dialect for session storage: {dialect}")

        self.pool = pool
        self.codec = codec or RecordCodec()
        # Only PostgreSQL has schema namespaces inside one database
        schema = schema_name if dialect == "postgresql" else None
        self.table = build_session_table(table_name, schema=schema)
        self.schema_manager = SchemaManager(pool, self.table)

    @classmethod
    def from_settings(cls, settings, pool: Optional[ConnectionPool] = None, **kwargs) -> "SqlSessionStore":
        """Build a store (and, unless given, its pool) from settings"""
        num_bytes = settings.SESSION_ID_BYTES
        kwargs.setdefault("id_generator", lambda: generate_session_id(num_bytes))
        return cls(
            pool or ConnectionPool.from_settings(settings),
            schema_name=settings.SCHEMA_NAME,
            table_name=settings.TABLE_NAME,
            codec=RecordCodec.from_settings(settings),
            max_create_attempts=settings.CREATE_MAX_ATTEMPTS,
            **kwargs,
        )

    async def ensure_schema(self) -> None:
        await self.schema_manager.ensure_schema()

    migrate = ensure_schema

    def _upsert(self, values: dict):
        dialect = self.pool.dialect_name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        else:
            from sqlalchemy.dialects.mysql import insert as mysql_insert

            stmt = mysql_insert(self.table).values(**values)
            return stmt.on_duplicate_key_update(data=stmt.inserted.data, expiry=stmt.inserted.expiry)

        stmt = dialect_insert(self.table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[self.table.c.id],
            set_={"data": stmt.excluded.data, "expiry": stmt.excluded.expiry},
        )

    async def _insert_new(self, session_id: str, data: BytesLike, expiry: datetime) -> bool:
        stmt = insert(self.table).values(id=session_id, data=self.codec.encode(data), expiry=expiry)
        try:
            async with self.pool.transaction() as conn:
                await conn.execute(stmt)
        except DuplicateKey:
            return False
        return True

    async def load(self, session_id: str) -> Optional[SessionRecord]:
        stmt = select(self.table.c.data, self.table.c.expiry).where(
            self.table.c.id == session_id,
            self.table.c.expiry > self.clock(),
        )
        async with self.pool.connection() as conn:
            row = (await conn.execute(stmt)).first()

        if row is None:
            return None
        return SessionRecord(id=session_id, data=self.codec.decode(row.data), expiry=row.expiry)

    async def save(self, session_id: str, data: BytesLike, expiry: datetime) -> None:
        stmt = self._upsert(
            {"id": session_id, "data": self.codec.encode(data), "expiry": _require_aware(expiry)}
        )
        async with self.pool.transaction() as conn:
            await conn.execute(stmt)

    async def delete(self, session_id: str) -> None:
        async with self.pool.transaction() as conn:
            await conn.execute(delete(self.table).where(self.table.c.id == session_id))

    async def purge_expired(self) -> int:
        now = self.clock()
        async with self.pool.transaction() as conn:
            result = await conn.execute(delete(self.table).where(self.table.c.expiry <= now))
        removed = result.rowcount or 0
        logger.debug("Purged expired sessions", extra={"removed": removed})
        return removed
