"""DeDust DEX integration for TON.

Uses the DeDust v2 REST API for pools, assets and swap estimates.
API docs: https://docs.dedust.io/
"""

import logging
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Optional

import httpx

from tonswap.errors import BackendUnavailableError, MissingParameterError
from tonswap.routing.base import (
    Asset,
    HttpBackendAdapter,
    Pool,
    Quote,
    find_pool,
    parse_amount,
)

logger = logging.getLogger(__name__)

DEDUST_API = "https://api.dedust.io/v2"

# Constant-product fee: 0.3%
FEE_NUMERATOR = 3
FEE_DENOMINATOR = 1000

# Heuristic tier: 97% of input, fixed 0.5% impact
HEURISTIC_OUTPUT_PERCENT = 97
HEURISTIC_PRICE_IMPACT = Decimal("0.5")


def to_decimal(value: Any, default: str = "0") -> Decimal:
    """Parse a percentage field that may arrive as str, int or float."""
    if value is None or value == "":
        return Decimal(default)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(default)


def price_impact_percent(amount: int, reserve_in: int) -> Decimal:
    """amount * 100 / reserve_in, two decimal places, uncapped."""
    with localcontext() as ctx:
        ctx.prec = 100
        return (Decimal(amount * 100) / Decimal(reserve_in)).quantize(Decimal("0.01"))


def constant_product_quote(
    backend: str,
    amount: int,
    reserve_in: int,
    reserve_out: int,
    pool_address: Optional[str] = None,
) -> Quote:
    """Quote a swap against x*y=k reserves with a 0.3% input fee."""
    fee = amount * FEE_NUMERATOR // FEE_DENOMINATOR
    amount_after_fee = amount - fee
    output = (amount_after_fee * reserve_out) // (reserve_in + amount_after_fee)
    return Quote(
        backend=backend,
        output_amount=output,
        price_impact=price_impact_percent(amount, reserve_in),
        fee=fee,
        route="pool",
        pool_address=pool_address,
    )


def heuristic_quote(backend: str, amount: int) -> Quote:
    """Last-resort estimate when neither pool data nor the API answer."""
    return Quote(
        backend=backend,
        output_amount=amount * HEURISTIC_OUTPUT_PERCENT // 100,
        price_impact=HEURISTIC_PRICE_IMPACT,
        fee=amount * FEE_NUMERATOR // FEE_DENOMINATOR,
        route="estimated",
    )


class DedustAdapter(HttpBackendAdapter):
    """DeDust DEX adapter.

    Estimates fall through three tiers, each less trustworthy than the last:
    local pool math, the remote estimate endpoint, a fixed heuristic.
    """

    def __init__(
        self,
        base_url: str = DEDUST_API,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)

    @property
    def name(self) -> str:
        return "dedust"

    @staticmethod
    def _parse_asset(raw: Any) -> Optional[Asset]:
        """Normalize a DeDust asset object ({type, address, metadata})."""
        if not isinstance(raw, dict):
            return None
        metadata = raw.get("metadata") or {}
        symbol = raw.get("symbol") or metadata.get("symbol")
        name = raw.get("name") or metadata.get("name")
        decimals = raw.get("decimals", metadata.get("decimals"))

        if raw.get("type") == "native":
            return Asset.native(symbol=symbol or "TON")

        address = raw.get("address")
        if not address:
            return None
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
        assets = [self._parse_asset(a) for a in raw.get("assets") or []]
        if not assets or any(a is None for a in assets):
            return None

        reserves = [parse_amount(r) for r in raw.get("reserves") or []]
        if any(r is None for r in reserves):
            logger.debug(f"DeDust pool {raw.get('address')} has invalid reserves")
            reserves = []

        return Pool(
            backend=self.name,
            address=raw.get("address"),
            assets=tuple(assets),
            reserves=tuple(reserves),
            total_supply=parse_amount(raw.get("totalSupply")),
        )

    async def list_pools(self) -> list[Pool]:
        """Fetch DeDust pools. Returns [] on failure."""
        try:
            data = await self._get_json("/pools")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"DeDust pools error: {type(e).__name__}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning("DeDust pools error: unexpected response shape")
            return []

        pools = []
        for raw in data:
            pool = self._parse_pool(raw)
            if pool is not None:
                pools.append(pool)
        return pools

    async def list_assets(self) -> list[Asset]:
        """Fetch DeDust assets. Returns [] on failure."""
        try:
            data = await self._get_json("/assets")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"DeDust assets error: {type(e).__name__}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning("DeDust assets error: unexpected response shape")
            return []

        return [a for a in (self._parse_asset(raw) for raw in data) if a is not None]

    @staticmethod
    def _asset_ref(asset: Asset) -> dict:
        if asset.is_native:
            return {"type": "native"}
        return {"type": "jetton", "address": asset.address}

    async def _remote_estimate(
        self,
        from_asset: Asset,
        to_asset: Asset,
        amount: int,
    ) -> Optional[Quote]:
        """Ask DeDust to estimate the swap.

        Returns None on a non-2xx or unusable body; raises on transport failure.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/swap/estimate",
                    json={
                        "from": self._asset_ref(from_asset),
                        "to": self._asset_ref(to_asset),
                        "amount": str(amount),
                    },
                )
        except httpx.HTTPError as e:
            # Transport failure skips the heuristic tier: DeDust drops out of the comparison
            raise BackendUnavailableError(self.name, f"estimate request failed: {e}") from e

        if not response.is_success:
            logger.debug(f"DeDust estimate API error: {response.status_code}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.debug("DeDust estimate returned non-JSON body")
            return None
        if not isinstance(data, dict):
            return None

        output = parse_amount(data.get("amountOut", data.get("amount_out")))
        if output is None:
            return None

        return Quote(
            backend=self.name,
            output_amount=output,
            price_impact=to_decimal(data.get("priceImpact", data.get("price_impact"))),
            fee=parse_amount(data.get("fee")) or 0,
            route=data.get("route") if isinstance(data.get("route"), str) else "direct",
        )

    async def estimate(
        self,
        from_asset: Asset,
        to_asset: Asset,
        amount: int,
    ) -> Optional[Quote]:
        """Estimate a swap: pool math, then remote estimate, then heuristic."""
        pools = await self.list_pools()
        pool = find_pool(pools, from_asset, to_asset)

        if pool is not None:
            reserves = pool.oriented_reserves(from_asset)
            if reserves and reserves[0] > 0:
                reserve_in, reserve_out = reserves
                quote = constant_product_quote(
                    self.name, amount, reserve_in, reserve_out, pool_address=pool.address
                )
                logger.debug(
                    f"DeDust pool quote {from_asset.label}->{to_asset.label}: "
                    f"{quote.output_amount} via {pool.address}"
                )
                return quote
            logger.debug(f"DeDust pool {pool.address} unusable for local math")

        quote = await self._remote_estimate(from_asset, to_asset, amount)
        if quote is not None:
            return quote

        logger.info(
            f"DeDust falling back to heuristic estimate for "
            f"{from_asset.label}->{to_asset.label}"
        )
        return heuristic_quote(self.name, amount)
