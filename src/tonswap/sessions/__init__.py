"""Live client sessions: registry, price subscriptions and message dispatch."""

from tonswap.sessions.dispatcher import MessageDispatcher
from tonswap.sessions.manager import SubscriptionManager
from tonswap.sessions.registry import Session, SessionRegistry, Subscription

__all__ = [
    "MessageDispatcher",
    "Session",
    "SessionRegistry",
    "Subscription",
    "SubscriptionManager",
]
