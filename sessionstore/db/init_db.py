"""Idempotent creation of the session table and its expiry index"""

import logging
from typing import Optional

from sqlalchemy import Table
from sqlalchemy import exc as sa_exc
from sqlalchemy.schema import CreateIndex, CreateSchema, CreateTable

from sessionstore.core.exceptions import SchemaInitializationError, SessionStoreError
from sessionstore.db.session import ConnectionPool

logger = logging.getLogger("sessionstore.database")

# duplicate_schema, duplicate_table, duplicate_object, unique_violation
DUPLICATE_OBJECT_SQLSTATES = {"42P06", "42P07", "42710", "23505"}
# ER_TABLE_EXISTS_ERROR, ER_DUP_KEYNAME
DUPLICATE_OBJECT_MYSQL_CODES = {1050, 1061}

IF_NOT_EXISTS_DIALECTS = {"postgresql", "sqlite"}

MAX_DDL_ATTEMPTS = 3


def _sqlstate(error: sa_exc.DBAPIError) -> Optional[str]:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_duplicate_object_error(error: BaseException) -> bool:
    """True when a concurrent schema creation lost the race to another process"""
    if not isinstance(error, sa_exc.DBAPIError):
        return False
    if _sqlstate(error) in DUPLICATE_OBJECT_SQLSTATES:
        return True
    args = getattr(error.orig, "args", ())
    return bool(args) and args[0] in DUPLICATE_OBJECT_MYSQL_CODES


class SchemaManager:
    """Creates the session table, its schema and its expiry index if missing."""

    def __init__(self, pool: ConnectionPool, table: Table):
        self.pool = pool
        self.table = table

    async def _create_all(self) -> None:
        async with self.pool.engine.begin() as conn:
            if conn.dialect.name not in IF_NOT_EXISTS_DIALECTS:
                # MySQL has no CREATE INDEX IF NOT EXISTS
                await conn.run_sync(self.table.metadata.create_all, tables=[self.table], checkfirst=True)
                return
            if self.table.schema is not None:
                await conn.execute(CreateSchema(self.table.schema, if_not_exists=True))
            await conn.execute(CreateTable(self.table, if_not_exists=True))
            for index in self.table.indexes:
                await conn.execute(CreateIndex(index, if_not_exists=True))

    async def ensure_schema(self) -> None:
        """
        Create the session table if it does not exist.

        Safe to call repeatedly and from several processes at once.

        Raises:
            SchemaInitializationError: On any connectivity or permission failure
        """
        for attempt in range(1, MAX_DDL_ATTEMPTS + 1):
            try:
                await self._create_all()
            except sa_exc.SQLAlchemyError as e:
                if is_duplicate_object_error(e):
                    logger.debug(
                        "Concurrent schema creation detected, retrying",
                        extra={"attempt": attempt, "table": self.table.fullname},
                    )
                    if attempt < MAX_DDL_ATTEMPTS:
                        continue
                    # Another process created every object we need
                    return
                logger.error(f"Failed to initialize session table: {e}", extra={
                    "error_type": type(e).__name__,
                    "table": self.table.fullname,
                })
                raise SchemaInitializationError(f"Failed to initialize session table: {e}") from e
            except (SessionStoreError, OSError) as e:
                logger.error(f"Failed to initialize session table: {e}", extra={
                    "error_type": type(e).__name__,
                    "table": self.table.fullname,
                })
                raise SchemaInitializationError(f"Failed to initialize session table: {e}") from e

            logger.info("Session table ready", extra={"table": self.table.fullname})
            return
