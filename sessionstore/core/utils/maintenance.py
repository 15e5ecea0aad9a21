"""Periodic removal of expired sessions.

The store only provides ``purge_expired``; when to run it is up to the host.
These helpers cover the common case of a background task in the serving
process.
"""

import asyncio
import logging
from typing import Optional

from sessionstore.core import config
from sessionstore.core.exceptions import ConnectionUnavailable
from sessionstore.core.utils.session_store import SessionStore

logger = logging.getLogger(__name__)


async def continuously_purge_expired(
    store: SessionStore,
    period_seconds: Optional[float] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Purge expired sessions every ``period_seconds`` until cancelled or stopped.

    Transient connection failures are logged and the next sweep proceeds on
    schedule. Any other store error ends the loop and propagates.

    Args:
        store: Store to sweep
        period_seconds: Delay between sweeps (default: PURGE_INTERVAL_SECONDS)
        stop_event: Optional event that ends the loop after the current sweep
    """
    if period_seconds is None:
        period_seconds = config.settings.PURGE_INTERVAL_SECONDS
    if period_seconds <= 0:
        raise ValueError("period_seconds must be positive")

    while stop_event is None or not stop_event.is_set():
        try:
            removed = await store.purge_expired()
            if removed:
                logger.debug("Expired sessions removed", extra={"removed": removed})
        except ConnectionUnavailable as e:
            logger.warning(f"Expired session purge skipped: {e}")

        if stop_event is None:
            await asyncio.sleep(period_seconds)
            continue
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=period_seconds)
        except asyncio.TimeoutError:
            pass


def start_purge_task(
    store: SessionStore,
    period_seconds: Optional[float] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> "asyncio.Task[None]":
    """Schedule continuously_purge_expired on the running loop"""
    return asyncio.create_task(
        continuously_purge_expired(store, period_seconds, stop_event),
        name="sessionstore-purge-expired",
    )
