"""REST wrappers over the backend catalogs (assets and pools)."""

from typing import Optional

from fastapi import APIRouter, Query, Request

router = APIRouter()


@router.get("/assets")
async def list_assets(request: Request) -> dict:
    """Assets known to each backend."""
    assets = await request.app.state.quotes.get_assets()
    return {"success": True, **assets}


@router.get("/pools")
async def list_pools(
    request: Request,
    dex: Optional[str] = Query(None, description="dedust, stonfi or all"),
) -> dict:
    """Pools known to each backend. An unknown dex yields no pools."""
    pools = await request.app.state.quotes.get_pools(dex)
    return {"success": True, "pools": pools}
