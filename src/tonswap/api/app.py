"""FastAPI application factory.

Services are created with the app and stopped by its lifespan: the session
registry, the subscription manager and the aggregator live exactly as long
as the application.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tonswap.catalog import CatalogStore
from tonswap.config import Settings, get_settings
from tonswap.routing.aggregator import QuoteAggregator
from tonswap.routing.factory import create_aggregator
from tonswap.sessions.dispatcher import MessageDispatcher
from tonswap.sessions.manager import SubscriptionManager
from tonswap.sessions.registry import SessionRegistry
from tonswap.web.services.quote_service import QuoteService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"tonswap started with backends: {', '.join(app.state.aggregator.backend_names)}")
    yield
    # Shutdown
    await app.state.manager.shutdown()


def create_app(
    settings: Optional[Settings] = None,
    aggregator: Optional[QuoteAggregator] = None,
    proxy_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (cached settings if omitted)
        aggregator: Pre-built aggregator (adapters from settings if omitted)
        proxy_transport: Optional httpx transport for the reverse proxy
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="tonswap API",
        description="TON swap aggregator: DeDust + STON.fi quotes, unsigned swaps, live prices",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Services
    aggregator = aggregator or create_aggregator(settings)
    registry = SessionRegistry(lock_timeout=settings.registry_lock_timeout)
    manager = SubscriptionManager(
        registry,
        aggregator,
        default_interval_ms=settings.price_interval_ms,
        min_interval_ms=settings.min_price_interval_ms,
    )
    quotes = QuoteService(aggregator, settings=settings)

    app.state.settings = settings
    app.state.aggregator = aggregator
    app.state.registry = registry
    app.state.manager = manager
    app.state.quotes = quotes
    app.state.dispatcher = MessageDispatcher(manager, quotes)
    app.state.catalog = CatalogStore(settings.catalog_path)
    app.state.proxy_transport = proxy_transport

    # Register routes
    from tonswap.api.routes import health, market, proxy, ws

    app.include_router(health.router, tags=["Health"])
    app.include_router(market.router, tags=["Market"])
    app.include_router(ws.router, tags=["WebSocket"])
    app.include_router(proxy.router, prefix="/proxy", tags=["Proxy"])
    app.include_router(proxy.router, prefix="/.netlify/functions/proxy", include_in_schema=False)

    return app


# Default app instance
app = create_app()
