"""
Database helper utilities for the session store.

Provides connection diagnostics and a health check that operators and
hosting processes can surface from their own health endpoints.
"""

import logging
from typing import Any, Dict

from sqlalchemy import inspect, text

from sessionstore.core.exceptions import SessionStoreError
from sessionstore.core.utils.session_store import SqlSessionStore

logger = logging.getLogger(__name__)

VERSION_QUERIES = {
    "sqlite": "SELECT sqlite_version()",
    "postgresql": "SELECT version()",
    "mysql": "SELECT version()",
    "mariadb": "SELECT version()",
}


async def get_database_info(store: SqlSessionStore) -> Dict[str, Any]:
    """
    Get database connection information and metadata.

    Returns:
        Dict containing database type, connection status, version and tables
    """
    db_type = store.pool.dialect_name
    info: Dict[str, Any] = {
        "type": db_type,
        "connected": False,
        "tables": [],
        "version": None,
        "error": None,
    }

    try:
        async with store.pool.connection() as conn:
            info["connected"] = True

            query = VERSION_QUERIES.get(db_type)
            if query:
                version_str = (await conn.execute(text(query))).scalar()
                if db_type == "postgresql" and version_str:
                    # "PostgreSQL 16.2 on x86_64..." -> "16.2"
                    version_str = version_str.split()[1]
                info["version"] = version_str

            schema = store.table.schema
            info["tables"] = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).get_table_names(schema=schema)
            )
    except SessionStoreError as e:
        logger.error(f"Database connection error: {e}")
        info["error"] = str(e)

    return info


async def check_database_health(store: SqlSessionStore) -> Dict[str, Any]:
    """
    Perform database health check.

    Returns:
        Dict containing health status, session table presence and pool status
    """
    health: Dict[str, Any] = {
        "status": "healthy",
        "database_type": store.pool.dialect_name,
        "connected": False,
        "session_table": store.table.fullname,
        "session_table_present": False,
        "connection_pool_status": "unknown",
        "last_error": None,
    }

    db_info = await get_database_info(store)
    health["connected"] = db_info["connected"]
    health["session_table_present"] = store.table.name in db_info["tables"]

    if db_info["error"]:
        health["status"] = "unhealthy"
        health["last_error"] = db_info["error"]
    elif not health["session_table_present"]:
        health["status"] = "warning"
        health["last_error"] = "Session table not found - run ensure_schema()"

    health["connection_pool_status"] = store.pool.status()
    return health
