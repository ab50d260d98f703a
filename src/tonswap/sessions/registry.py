"""Registry of live client sessions.

The registry is the only mutable state shared between connections. Every
mutation happens inside one coarse lock; reads are plain dict lookups.
"""

import asyncio
import logging
import secrets
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from tonswap.utils.locks import guarded

logger = logging.getLogger(__name__)

SendFunc = Callable[[dict], Awaitable[Any]]


def generate_session_id() -> str:
    """Unique client identifier, e.g. client_1718000000000_9f1c2a7b3e."""
    return f"client_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


@dataclass
class Subscription:
    """One periodic price refresh owned by a session."""

    pairs: list[str]
    interval_ms: int
    task: Optional[asyncio.Task] = field(default=None, repr=False)
    started_at: float = field(default_factory=time.time)

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()


@dataclass
class Session:
    """One open client connection."""

    id: str
    _send: SendFunc = field(repr=False)
    subscription: Optional[Subscription] = None
    alive: bool = True
    connected_at: float = field(default_factory=time.time)
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def send(self, message: dict) -> bool:
        """Send a frame unless the session has been closed.

        Returns:
            True if the frame was handed to the transport
        """
        if not self.alive:
            return False
        async with self._send_lock:
            if not self.alive:
                return False
            try:
                await self._send(message)
            except Exception as e:
                logger.warning(f"Send to {self.id} failed, closing session: {e}")
                self.alive = False
                return False
        return True


class SessionRegistry:
    """Process-scoped store: session id -> Session."""

    def __init__(self, lock_timeout: Optional[float] = 5.0):
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()
        self.lock_timeout = lock_timeout

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    @asynccontextmanager
    async def locked(self, operation: str) -> AsyncIterator[None]:
        """Critical section for registry mutations."""
        async with guarded(self._lock, timeout=self.lock_timeout, operation=operation):
            yield

    @property
    def subscription_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.subscription is not None)

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    async def register(self, send: SendFunc, session_id: Optional[str] = None) -> Session:
        """Create and store a session for a new connection."""
        session = Session(id=session_id or generate_session_id(), _send=send)
        async with self.locked("register"):
            self._sessions[session.id] = session
        logger.info(f"Session registered: {session.id} ({len(self)} open)")
        return session

    async def remove(self, session_id: str) -> Optional[Session]:
        """Remove a session. Removing an unknown id is a no-op."""
        async with self.locked("remove"):
            session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info(f"Session removed: {session_id} ({len(self)} open)")
        return session

    async def clear(self) -> list[Session]:
        """Remove every session (service shutdown)."""
        async with self.locked("clear"):
            sessions = list(self._sessions.values())
            self._sessions.clear()
        return sessions
