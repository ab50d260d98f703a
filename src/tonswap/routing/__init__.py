"""Routing module for swap quote aggregation.

Backends:
- DeDust: TON AMM, estimates via pool math, remote estimate or heuristic
- STON.fi: TON AMM, estimates via swap simulation
"""

from tonswap.routing.aggregator import AggregatedQuote, QuoteAggregator, min_received
from tonswap.routing.base import (
    Asset,
    AssetKind,
    BackendAdapter,
    Pool,
    Quote,
    SwapIntent,
    find_pool,
    normalize_address,
)
from tonswap.routing.dedust import DedustAdapter
from tonswap.routing.factory import (
    create_aggregator,
    create_dedust_provider,
    create_stonfi_provider,
)
from tonswap.routing.stonfi import StonfiAdapter

__all__ = [
    # Types
    "Asset",
    "AssetKind",
    "Pool",
    "Quote",
    "SwapIntent",
    "BackendAdapter",
    # Aggregation
    "AggregatedQuote",
    "QuoteAggregator",
    "min_received",
    "find_pool",
    "normalize_address",
    # Adapters
    "DedustAdapter",
    "StonfiAdapter",
    # Factory functions
    "create_aggregator",
    "create_dedust_provider",
    "create_stonfi_provider",
]
