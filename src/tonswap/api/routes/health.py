"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Basic health check with live connection counts."""
    registry = request.app.state.registry
    return {
        "status": "ok",
        "service": "tonswap",
        "wsClients": len(registry),
        "subscriptions": registry.subscription_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info."""
    state = request.app.state
    return {
        "status": "ok",
        "service": "tonswap",
        "version": "0.1.0",
        "backends": state.aggregator.backend_names,
        "wsClients": len(state.registry),
        "subscriptions": state.registry.subscription_count,
        "config": state.settings.get_safe_dict(),
    }
