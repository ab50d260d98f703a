"""Pytest configuration and fixtures."""

import asyncio
import json
import os
from decimal import Decimal
from typing import Callable, Optional

import httpx
import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"

from tonswap.config import Settings
from tonswap.routing.aggregator import QuoteAggregator
from tonswap.routing.base import Asset, BackendAdapter, Pool, Quote

USDT_ADDRESS = "EQCxE6mUtQJKFnGfaROTKOt1lZbDiiX1kCixRv7Nw2Id_sDs"
STON_ADDRESS = "EQA2kCVNwVsil2EM2mB0SkXytxCqQjS4mttjDpnXmwG9T6bO"
SENDER = "UQBvW8Z5huBkMJYdnfAEM5JqTNkuWX3diqYENkWsIL0XggGG"


class FakeAdapter(BackendAdapter):
    """In-memory backend with a fixed answer."""

    def __init__(
        self,
        name: str,
        output: Optional[int] = None,
        error: Optional[Exception] = None,
        pools: Optional[list[Pool]] = None,
        assets: Optional[list[Asset]] = None,
        delay: float = 0.0,
    ):
        self._name = name
        self.output = output
        self.error = error
        self.pools = pools or []
        self.assets = assets or []
        self.delay = delay
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def list_pools(self) -> list[Pool]:
        return list(self.pools)

    async def list_assets(self) -> list[Asset]:
        return list(self.assets)

    async def estimate(self, from_asset, to_asset, amount):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.output is None:
            return None
        return Quote(
            backend=self._name,
            output_amount=self.output,
            price_impact=Decimal("0.10"),
            fee=amount * 3 // 1000,
            route=self._name,
        )


def make_pool(
    backend: str,
    symbols: tuple[str, str],
    reserves: tuple[int, ...] = (1_000_000_000_000, 2_000_000_000_000),
    address: str = "EQpool",
) -> Pool:
    """Pool of native TON (when symbol is TON) and a jetton."""
    assets = []
    for i, symbol in enumerate(symbols):
        if symbol == "TON":
            assets.append(Asset.native())
        else:
            assets.append(Asset.token(f"EQjetton{symbol}{i}", symbol=symbol))
    return Pool(backend=backend, address=address, assets=tuple(assets), reserves=reserves)


def json_transport(routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]]):
    """MockTransport dispatching on (method, path)."""

    def handler(request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        if key not in routes:
            return httpx.Response(404, json={"error": "not found"})
        return routes[key](request)

    return httpx.MockTransport(handler)


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        catalog_path=str(tmp_path / "catalog.json"),
        min_price_interval_ms=10,
    )


@pytest.fixture
def fake_dedust() -> FakeAdapter:
    return FakeAdapter(
        "dedust",
        output=1_000,
        pools=[make_pool("dedust", ("TON", "USDT"), address="EQdedustPool")],
        assets=[Asset.native(), Asset.token(USDT_ADDRESS, symbol="USDT", decimals=6)],
    )


@pytest.fixture
def fake_stonfi() -> FakeAdapter:
    return FakeAdapter(
        "stonfi",
        output=900,
        pools=[make_pool("stonfi", ("TON", "STON"), reserves=(10, 40), address="EQstonPool")],
        assets=[Asset.token(STON_ADDRESS, symbol="STON", decimals=9)],
    )


@pytest.fixture
def aggregator(fake_dedust, fake_stonfi) -> QuoteAggregator:
    return QuoteAggregator([fake_dedust, fake_stonfi])
