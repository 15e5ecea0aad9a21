"""
Global test configuration and fixtures for the session store

Provides settings pointed at a throwaway SQLite database, a pooled engine,
a schema-initialized SQL store, an in-memory store and a controllable clock.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from sessionstore.core.config import Settings
from sessionstore.core.utils.memory_store import MemorySessionStore
from sessionstore.core.utils.session_store import SqlSessionStore
from sessionstore.db.session import ConnectionPool


# ============================================================================
# Clock
# ============================================================================

class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function")
def clock():
    return FrozenClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="function")
def later(clock):
    """An expiry one hour after the frozen clock"""
    return clock.now + timedelta(hours=1)


@pytest.fixture(scope="function")
def earlier(clock):
    """An expiry one second before the frozen clock"""
    return clock.now - timedelta(seconds=1)


# ============================================================================
# Settings and Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_settings(tmp_path):
    """Settings pointed at a per-test SQLite file"""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'sessions.db'}",
        POOL_SIZE=5,
        MAX_OVERFLOW=5,
        POOL_TIMEOUT=5.0,
        LOG_JSON=False,
    )


@pytest_asyncio.fixture(scope="function")
async def pool(test_settings):
    connection_pool = ConnectionPool.from_settings(test_settings)
    yield connection_pool
    await connection_pool.dispose()


@pytest_asyncio.fixture(scope="function")
async def sql_store(test_settings, pool, clock):
    """SQL store with the schema created and a frozen clock"""
    store = SqlSessionStore.from_settings(test_settings, pool=pool, clock=clock)
    await store.ensure_schema()
    return store


@pytest.fixture(scope="function")
def memory_store(clock):
    return MemorySessionStore(clock=clock)


@pytest.fixture(scope="function", params=["memory", "sql"])
def any_store(request, memory_store, sql_store):
    """Run a contract test against every backend"""
    return memory_store if request.param == "memory" else sql_store


# ============================================================================
# Test Markers and Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: mark test as a pure unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as exercising a real database"
    )
    config.addinivalue_line(
        "markers", "security: mark test as security-related"
    )
    config.addinivalue_line(
        "markers", "critical: mark test as critical path functionality"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers based on file location"""
    for item in items:
        path = str(item.fspath)
        if "security" in path:
            item.add_marker(pytest.mark.security)
        if "integration" in path:
            item.add_marker(pytest.mark.integration)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
