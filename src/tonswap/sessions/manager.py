"""Per-session price subscriptions.

Each session owns at most one refresh task. The task is handed only the
session id and the subscription it was started for; it looks the session up
at every tick and stops as soon as the session is gone or the subscription
has been replaced.
"""

import asyncio
import logging
import time
from typing import Optional

from tonswap.errors import MissingParameterError
from tonswap.routing.aggregator import QuoteAggregator
from tonswap.sessions.registry import Session, SessionRegistry, Subscription

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 3000
MIN_INTERVAL_MS = 500


def now_ms() -> int:
    return int(time.time() * 1000)


class SubscriptionManager:
    """Owns the refresh tasks of every session."""

    def __init__(
        self,
        registry: SessionRegistry,
        aggregator: QuoteAggregator,
        default_interval_ms: int = DEFAULT_INTERVAL_MS,
        min_interval_ms: int = MIN_INTERVAL_MS,
    ):
        self.registry = registry
        self.aggregator = aggregator
        self.default_interval_ms = default_interval_ms
        self.min_interval_ms = min_interval_ms

    def _normalize_interval(self, interval_ms: Optional[int]) -> int:
        if interval_ms is None:
            return self.default_interval_ms
        if isinstance(interval_ms, bool) or not isinstance(interval_ms, int) or interval_ms <= 0:
            raise MissingParameterError(f"Invalid interval: {interval_ms!r}")
        return max(interval_ms, self.min_interval_ms)

    async def subscribe(
        self,
        session_id: str,
        pairs: Optional[list[str]] = None,
        interval_ms: Optional[int] = None,
    ) -> Optional[Subscription]:
        """Start, or restart, the session's price refresh.

        Any previous subscription is cancelled first.

        Returns:
            The new subscription, or None if the session is already closed
        """
        pairs = list(pairs or [])
        if not all(isinstance(p, str) for p in pairs):
            raise MissingParameterError("pairs must be a list of strings")
        interval_ms = self._normalize_interval(interval_ms)

        async with self.registry.locked("subscribe"):
            session = self.registry.get(session_id)
            if session is None or not session.alive:
                logger.debug(f"Subscribe ignored for closed session {session_id}")
                return None

            if session.subscription is not None:
                session.subscription.cancel()

            subscription = Subscription(pairs=pairs, interval_ms=interval_ms)
            subscription.task = asyncio.create_task(
                self._refresh_loop(session_id, subscription),
                name=f"prices:{session_id}",
            )
            session.subscription = subscription

        logger.info(f"Client {session_id} subscribed to prices: {pairs or 'all'} every {interval_ms}ms")
        return subscription

    async def unsubscribe(self, session_id: str) -> bool:
        """Cancel the session's refresh. Returns whether one was active."""
        async with self.registry.locked("unsubscribe"):
            session = self.registry.get(session_id)
            if session is None or session.subscription is None:
                return False
            session.subscription.cancel()
            session.subscription = None

        logger.info(f"Client {session_id} unsubscribed from prices")
        return True

    async def disconnect(self, session_id: str) -> bool:
        """Close a session for good. Duplicate calls are a no-op.

        The refresh task is cancelled before anything is awaited, so no
        update can be delivered once the close has been observed.
        """
        session = self.registry.get(session_id)
        if session is not None:
            session.alive = False
            if session.subscription is not None:
                session.subscription.cancel()

        removed = await self.registry.remove(session_id)
        return removed is not None

    async def shutdown(self) -> None:
        """Cancel every refresh task and drop all sessions."""
        sessions = await self.registry.clear()
        tasks = []
        for session in sessions:
            session.alive = False
            if session.subscription is not None:
                session.subscription.cancel()
                if session.subscription.task is not None:
                    tasks.append(session.subscription.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Subscription manager stopped ({len(sessions)} sessions closed)")

    def _current_session(self, session_id: str, subscription: Subscription) -> Optional[Session]:
        session = self.registry.get(session_id)
        if session is None or not session.alive or session.subscription is not subscription:
            return None
        return session

    async def _refresh_loop(self, session_id: str, subscription: Subscription) -> None:
        interval = subscription.interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            if self._current_session(session_id, subscription) is None:
                return

            try:
                prices = await self.aggregator.bulk_prices(subscription.pairs)
            except Exception as e:
                logger.error(f"Price fetch error for {session_id}: {type(e).__name__}: {e}")
                continue

            # The session may have closed while prices were in flight
            session = self._current_session(session_id, subscription)
            if session is None:
                logger.debug(f"Discarding price update for closed session {session_id}")
                return

            await session.send({
                "type": "price_update",
                "prices": prices,
                "timestamp": now_ms(),
            })
