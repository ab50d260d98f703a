"""STON.fi DEX integration for TON.

Uses STON.fi API for pools, assets and swap simulation.
API docs: https://docs.ston.fi/
"""

import logging
from typing import Any, Optional

import httpx

from tonswap.errors import BackendUnavailableError, MissingParameterError
from tonswap.routing.base import (
    TON_ZERO_ADDRESS,
    Asset,
    HttpBackendAdapter,
    Pool,
    Quote,
    normalize_address,
    parse_amount,
)
from tonswap.routing.dedust import to_decimal

logger = logging.getLogger(__name__)

# STON.fi API endpoints
STONFI_API = "https://api.ston.fi/v1"

# Slippage sent with simulations; the response output is unaffected by it
SIMULATE_SLIPPAGE = "0.01"


class StonfiAdapter(HttpBackendAdapter):
    """STON.fi DEX adapter.

    STON.fi answers in snake_case and addresses native TON with the zero
    account; both are normalized here.
    """

    def __init__(
        self,
        base_url: str = STONFI_API,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)

    @property
    def name(self) -> str:
        return "stonfi"

    @staticmethod
    def _address_for(asset: Asset) -> str:
        return TON_ZERO_ADDRESS if asset.is_native else asset.address

    @staticmethod
    def _asset_from_address(
        address: Any,
        symbol: Optional[str] = None,
        name: Optional[str] = None,
        decimals: Any = None,
    ) -> Optional[Asset]:
        if not address or not isinstance(address, str):
            return None
        if normalize_address(address) == TON_ZERO_ADDRESS:
            return Asset.native(symbol=symbol or "TON")
        try:
            return Asset.token(
                address,
                symbol=symbol,
                name=name,
                decimals=int(decimals) if decimals is not None else None,
            )
        except (MissingParameterError, ValueError, TypeError):
            return None

    def _parse_pool(self, raw: Any) -> Optional[Pool]:
        if not isinstance(raw, dict):
            return None
        asset0 = self._asset_from_address(raw.get("token0_address"), raw.get("token0_symbol"))
        asset1 = self._asset_from_address(raw.get("token1_address"), raw.get("token1_symbol"))
        if asset0 is None or asset1 is None:
            return None

        reserve0 = parse_amount(raw.get("reserve0"))
        reserve1 = parse_amount(raw.get("reserve1"))
        reserves = (reserve0, reserve1) if reserve0 is not None and reserve1 is not None else ()

        return Pool(
            backend=self.name,
            address=raw.get("address"),
            assets=(asset0, asset1),
            reserves=reserves,
            total_supply=parse_amount(raw.get("lp_total_supply")),
        )

    async def list_pools(self) -> list[Pool]:
        """Fetch STON.fi pools. Returns [] on failure."""
        try:
            data = await self._get_json("/pools")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"STON.fi pools error: {type(e).__name__}: {e}")
            return []

        raw_pools = data.get("pool_list") if isinstance(data, dict) else None
        if not isinstance(raw_pools, list):
            logger.warning("STON.fi pools error: missing pool_list")
            return []

        return [p for p in (self._parse_pool(raw) for raw in raw_pools) if p is not None]

    async def list_assets(self) -> list[Asset]:
        """Fetch STON.fi assets. Returns [] on failure."""
        try:
            data = await self._get_json("/assets")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"STON.fi assets error: {type(e).__name__}: {e}")
            return []

        raw_assets = data.get("asset_list") if isinstance(data, dict) else None
        if not isinstance(raw_assets, list):
            logger.warning("STON.fi assets error: missing asset_list")
            return []

        assets = []
        for raw in raw_assets:
            if not isinstance(raw, dict):
                continue
            asset = self._asset_from_address(
                raw.get("contract_address"),
                symbol=raw.get("symbol"),
                name=raw.get("display_name"),
                decimals=raw.get("decimals"),
            )
            if asset is not None:
                assets.append(asset)
        return assets

    async def estimate(
        self,
        from_asset: Asset,
        to_asset: Asset,
        amount: int,
    ) -> Optional[Quote]:
        """Simulate the swap on STON.fi.

        Returns None when STON.fi has no route for the pair.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/swap/simulate",
                    json={
                        "offer_address": self._address_for(from_asset),
                        "ask_address": self._address_for(to_asset),
                        "units": str(amount),
                        "slippage_tolerance": SIMULATE_SLIPPAGE,
                    },
                )
        except httpx.HTTPError as e:
            raise BackendUnavailableError(self.name, f"simulate request failed: {e}") from e

        if not response.is_success:
            logger.debug(f"STON.fi simulate API error: {response.status_code}")
            return None

        try:
            data = response.json()
        except ValueError as e:
            raise BackendUnavailableError(self.name, "simulate returned non-JSON body") from e
        if not isinstance(data, dict):
            return None

        # Some deployments wrap the simulation in {"success": ..., "result": {...}}
        result = data.get("result") if isinstance(data.get("result"), dict) else data

        output = parse_amount(result.get("ask_units"))
        if output is None:
            output = parse_amount(result.get("min_ask_units"))
        if output is None:
            return None

        return Quote(
            backend=self.name,
            output_amount=output,
            price_impact=to_decimal(result.get("price_impact")),
            fee=parse_amount(result.get("fee_units")) or 0,
            route="stonfi",
            pool_address=result.get("pool_address") or None,
        )
