"""Web boundary layer for non-custodial operations.

SECURITY PRINCIPLES:
1. This layer never holds keys, signs or sends messages.
2. All operations are read-only or prepare data for client-side signing.
"""

__all__ = [
    "contracts",
    "services",
]
