"""Factory for creating backend adapters and the quote aggregator.

Adapter order in the aggregator is priority order: DeDust first, then STON.fi.
"""

import logging
from typing import Optional

import httpx

from tonswap.config import Settings, get_settings
from tonswap.routing.aggregator import QuoteAggregator
from tonswap.routing.base import BackendAdapter
from tonswap.routing.dedust import DedustAdapter
from tonswap.routing.stonfi import StonfiAdapter

logger = logging.getLogger(__name__)


def create_dedust_provider(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BackendAdapter:
    """Create the DeDust adapter from settings."""
    settings = settings or get_settings()
    return DedustAdapter(
        base_url=settings.dedust_api_url,
        timeout=settings.backend_timeout,
        transport=transport,
    )


def create_stonfi_provider(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BackendAdapter:
    """Create the STON.fi adapter from settings."""
    settings = settings or get_settings()
    return StonfiAdapter(
        base_url=settings.stonfi_api_url,
        timeout=settings.backend_timeout,
        transport=transport,
    )


def create_aggregator(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> QuoteAggregator:
    """Create the aggregator with both TON backends in priority order.

    Args:
        settings: Settings to use (cached settings if omitted)
        transport: Optional httpx transport shared by both adapters
    """
    settings = settings or get_settings()
    adapters = [
        create_dedust_provider(settings, transport),
        create_stonfi_provider(settings, transport),
    ]
    logger.info(f"Created aggregator with backends: {', '.join(a.name for a in adapters)}")
    return QuoteAggregator(adapters, price_pool_limit=settings.price_pool_limit)
