"""Concurrency control utilities.

Provides a timed critical section around shared in-process state such as
the session registry.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


@asynccontextmanager
async def guarded(
    lock: asyncio.Lock,
    timeout: Optional[float] = 5.0,
    operation: str = "registry_operation",
):
    """Hold lock for the duration of the block.

    Args:
        lock: Lock protecting the shared state
        timeout: Maximum time to wait for lock (None = wait forever)
        operation: Description for logging

    Example:
        async with guarded(self._lock, operation="register"):
            self._sessions[session.id] = session
    """
    try:
        if timeout:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        else:
            await lock.acquire()
    except asyncio.TimeoutError:
        logger.warning(f"Lock timeout after {timeout}s: {operation}")
        raise LockTimeoutError(f"Could not acquire lock within {timeout}s: {operation}")

    logger.debug(f"Lock acquired: {operation}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Lock released: {operation}")
