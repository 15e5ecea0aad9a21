#!/usr/bin/env python3
"""
Database setup script for the session store.

Creates the session table (and schema/index) for the configured database and
optionally purges expired sessions once.
"""

import argparse
import asyncio
import sys

from sessionstore.core.config import Settings, settings
from sessionstore.core.exceptions import SessionStoreError
from sessionstore.core.logging_config import init_logging
from sessionstore.core.utils.database_helpers import check_database_health, get_database_info
from sessionstore.core.utils.session_store import SqlSessionStore


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize the session store database")
    parser.add_argument("--database-url", help="Override SESSION_STORE_DATABASE_URL")
    parser.add_argument("--purge", action="store_true", help="Purge expired sessions after setup")
    return parser.parse_args(argv)


async def setup(config: Settings, purge: bool = False) -> bool:
    """Initialize the session table based on configuration"""
    print("Session Store Database Setup")
    print("=" * 40)

    store = SqlSessionStore.from_settings(config)
    try:
        db_info = await get_database_info(store)
        print(f"Database Type: {db_info['type']}")
        print(f"Connected: {db_info['connected']}")

        if db_info['error']:
            print(f"Connection Error: {db_info['error']}")
            return False

        if db_info['version']:
            print(f"Database Version: {db_info['version']}")

        print(f"Existing Tables: {len(db_info['tables'])}")
        for table in sorted(db_info['tables']):
            print(f"  - {table}")

        print(f"\nInitializing {store.table.fullname}...")
        try:
            await store.ensure_schema()
        except SessionStoreError as e:
            print(f"Database initialization failed: {e}")
            return False
        print("Session table ready")

        if purge:
            removed = await store.purge_expired()
            print(f"Purged {removed} expired session(s)")

        health = await check_database_health(store)
        print(f"Health Status: {health['status']}")
        print(f"Pool: {health['connection_pool_status']}")
        if health['status'] != 'healthy':
            print(f"Warning: {health['last_error']}")

        return health['status'] == 'healthy'
    finally:
        await store.pool.dispose()


def main(argv=None) -> int:
    args = parse_args(argv)
    config = settings
    if args.database_url:
        config = settings.model_copy(update={"DATABASE_URL": args.database_url})

    init_logging(config)
    success = asyncio.run(setup(config, purge=args.purge))
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
