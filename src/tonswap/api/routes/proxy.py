"""Reverse proxy to the wallet API, plus the locally served dapp catalog.

Mounted under /proxy (and the legacy /.netlify/functions/proxy prefix); the
prefix is stripped before forwarding.
"""

import logging

import httpx
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
BODY_METHODS = {"POST", "PUT", "PATCH"}

CATALOG_PATH = "/v2/dapp/catalog"
ROBOTS_PATH = "/robots.txt"

DEFAULT_ALLOWED_ORIGINS = [
    "https://tonapi.netlify.app",
    "http://localhost:4321",
    "http://127.0.0.1:4321",
    "http://localhost:8888",
]


def cors_headers(origin: str, allowed_origins: list[str]) -> dict[str, str]:
    """Echo a known origin, otherwise allow any."""
    allowed = set(allowed_origins) | set(DEFAULT_ALLOWED_ORIGINS)
    return {
        "Access-Control-Allow-Origin": origin if origin and origin in allowed else "*",
        "Access-Control-Allow-Methods": ", ".join(PROXY_METHODS),
        "Access-Control-Allow-Headers": "*",
        "Access-Control-Max-Age": "86400",
    }


@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy(path: str, request: Request) -> Response:
    """Serve the catalog locally, forward everything else upstream."""
    state = request.app.state
    settings = state.settings
    headers = cors_headers(request.headers.get("origin", ""), settings.allowed_origins)

    if request.method == "OPTIONS":
        return Response(status_code=200, headers=headers)

    clean = "/" + path.strip("/")
    if clean == CATALOG_PATH:
        return JSONResponse(state.catalog.get(), headers=headers)
    if clean == ROBOTS_PATH:
        return Response(content="", status_code=200, headers=headers)

    target = f"{settings.proxy_upstream.rstrip('/')}/{path}"
    if request.url.query:
        target = f"{target}?{request.url.query}"
    logger.info(f"Forwarding {request.method} to: {target}")

    body = await request.body() if request.method in BODY_METHODS else None
    try:
        async with httpx.AsyncClient(
            timeout=settings.proxy_timeout,
            transport=state.proxy_transport,
        ) as client:
            upstream = await client.request(
                request.method,
                target,
                content=body or None,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "X-App-Env": "Production",
                },
            )
    except httpx.HTTPError as e:
        logger.error(f"Proxy error for {target}: {e}")
        return JSONResponse({"error": str(e) or type(e).__name__}, status_code=500, headers=headers)

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        headers=headers,
        media_type=upstream.headers.get("content-type", "application/json"),
    )
