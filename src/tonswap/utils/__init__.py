"""Utility modules for tonswap."""

from tonswap.utils.locks import LockTimeoutError, guarded

__all__ = ["LockTimeoutError", "guarded"]
