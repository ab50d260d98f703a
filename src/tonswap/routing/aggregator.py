"""Quote aggregation across DEX backends.

Every adapter is queried concurrently and all of them settle before a
winner is picked, so the comparison never depends on which backend
answered first.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Optional, Union

from tonswap.errors import (
    AllBackendsUnavailableError,
    MissingParameterError,
)
from tonswap.routing.base import Asset, BackendAdapter, Pool, Quote

logger = logging.getLogger(__name__)

DEFAULT_PRICE_POOL_LIMIT = 20

# Labels used when a pool asset has no resolvable symbol
FALLBACK_BASE_SYMBOL = "TON"
FALLBACK_QUOTE_SYMBOL = "UNKNOWN"


def min_received(output_amount: int, slippage: Union[Decimal, str, int, float]) -> int:
    """Lowest acceptable output for a given slippage tolerance.

    floor(output_amount * (100 - slippage) / 100) with exact arithmetic.

    Args:
        output_amount: Quoted output in base units
        slippage: Tolerance in percent, 0 <= slippage < 100

    Returns:
        Minimum output in base units, never rounded up
    """
    try:
        tolerance = Fraction(Decimal(str(slippage)))
    except (InvalidOperation, ValueError) as e:
        raise MissingParameterError(f"Invalid slippage: {slippage!r}") from e
    if tolerance < 0 or tolerance >= 100:
        raise MissingParameterError(f"Slippage must be in [0, 100): {slippage}")
    if output_amount < 0:
        raise MissingParameterError(f"Output amount must be non-negative: {output_amount}")

    return int(output_amount * (100 - tolerance) // 100)


def format_price(reserve_in: Optional[int], reserve_out: Optional[int]) -> Optional[str]:
    """reserve_out / reserve_in with 9 decimal digits."""
    if not reserve_in or reserve_out is None:
        return None
    return f"{float(Fraction(reserve_out, reserve_in)):.9f}"


@dataclass
class AggregatedQuote:
    """Winner plus every backend's answer (None for failed or empty backends)."""

    winner: Quote
    by_backend: dict[str, Optional[Quote]] = field(default_factory=dict)
    failed_backends: list[str] = field(default_factory=list)

    @property
    def winner_backend(self) -> str:
        return self.winner.backend

    def comparison(self) -> dict[str, Optional[dict]]:
        return {
            name: quote.to_dict() if quote is not None else None
            for name, quote in self.by_backend.items()
        }


class QuoteAggregator:
    """Aggregates quotes from DEX adapters and picks the best output.

    Adapter order is priority order: on equal output the earlier backend wins.
    """

    def __init__(
        self,
        adapters: Optional[list[BackendAdapter]] = None,
        price_pool_limit: int = DEFAULT_PRICE_POOL_LIMIT,
    ):
        self.adapters: list[BackendAdapter] = adapters or []
        self.price_pool_limit = price_pool_limit

    @property
    def backend_names(self) -> list[str]:
        return [a.name for a in self.adapters]

    def get_adapter(self, name: str) -> Optional[BackendAdapter]:
        for adapter in self.adapters:
            if adapter.name == name:
                return adapter
        return None

    async def estimate_best(
        self,
        from_asset: Asset,
        to_asset: Asset,
        amount: int,
    ) -> AggregatedQuote:
        """
        Estimate on every backend and pick the largest output.

        Raises:
            MissingParameterError: amount is not positive
            AllBackendsUnavailableError: no backend produced a quote
        """
        if amount <= 0:
            raise MissingParameterError("Amount must be a positive integer")

        logger.info(f"Finding best quote: {amount} {from_asset.label} -> {to_asset.label}")

        results = await asyncio.gather(
            *(adapter.estimate(from_asset, to_asset, amount) for adapter in self.adapters),
            return_exceptions=True,
        )

        by_backend: dict[str, Optional[Quote]] = {}
        failed: list[str] = []
        winner: Optional[Quote] = None

        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"{adapter.name} quote failed: {type(result).__name__}: {result}")
                failed.append(adapter.name)
                by_backend[adapter.name] = None
                continue

            by_backend[adapter.name] = result
            if result is None:
                logger.debug(f"{adapter.name} returned no quote for {from_asset.label}->{to_asset.label}")
                continue

            logger.debug(f"Quote from {adapter.name}: {result.output_amount} ({result.route})")
            if winner is None or result.output_amount > winner.output_amount:
                winner = result

        if winner is None:
            logger.error(
                f"No quotes available for {from_asset.label}->{to_asset.label}. "
                f"Failed backends: {', '.join(failed) or 'none'}"
            )
            raise AllBackendsUnavailableError(
                f"No backend could quote {from_asset.label} -> {to_asset.label}"
            )

        logger.info(f"Selected best quote: {winner.backend} - {winner.output_amount} ({winner.route})")
        return AggregatedQuote(winner=winner, by_backend=by_backend, failed_backends=failed)

    async def estimate_with(
        self,
        backend: str,
        from_asset: Asset,
        to_asset: Asset,
        amount: int,
    ) -> Quote:
        """Estimate on a single backend. Any failure surfaces as AllBackendsUnavailableError."""
        adapter = self.get_adapter(backend)
        if adapter is None:
            raise AllBackendsUnavailableError(f"Unknown backend: {backend}")
        if amount <= 0:
            raise MissingParameterError("Amount must be a positive integer")

        try:
            quote = await adapter.estimate(from_asset, to_asset, amount)
        except Exception as e:
            logger.warning(f"{backend} quote failed: {type(e).__name__}: {e}")
            raise AllBackendsUnavailableError(f"{backend} is unavailable: {e}") from e

        if quote is None:
            raise AllBackendsUnavailableError(
                f"{backend} has no route for {from_asset.label} -> {to_asset.label}"
            )
        return quote

    async def list_pools(self, backend: Optional[str] = None) -> dict[str, list[Pool]]:
        """Pools per backend. Degraded backends report an empty list."""
        adapters = self.adapters
        if backend is not None:
            adapters = [a for a in self.adapters if a.name == backend]
        results = await asyncio.gather(*(a.list_pools() for a in adapters))
        return {a.name: pools for a, pools in zip(adapters, results)}

    async def list_assets(self) -> dict[str, list[Asset]]:
        """Assets per backend. Degraded backends report an empty list."""
        results = await asyncio.gather(*(a.list_assets() for a in self.adapters))
        return {a.name: assets for a, assets in zip(self.adapters, results)}

    async def bulk_prices(self, pairs: Optional[list[str]] = None) -> dict[str, dict]:
        """Spot prices keyed by "<SYM0>/<SYM1>".

        The first backend (in priority order) to report a pair key owns it.
        An empty or missing pairs list means every pair seen.
        """
        wanted = set(pairs or [])
        pools_by_backend = await self.list_pools()

        prices: dict[str, dict] = {}
        for backend in self.backend_names:
            for pool in pools_by_backend.get(backend, [])[: self.price_pool_limit]:
                if len(pool.assets) < 2:
                    continue
                pair_key = (
                    f"{pool.symbol_at(0) or FALLBACK_BASE_SYMBOL}/"
                    f"{pool.symbol_at(1) or FALLBACK_QUOTE_SYMBOL}"
                )
                if wanted and pair_key not in wanted:
                    continue
                if pair_key in prices:
                    continue

                reserve0 = pool.reserves[0] if len(pool.reserves) >= 2 else None
                reserve1 = pool.reserves[1] if len(pool.reserves) >= 2 else None
                prices[pair_key] = {
                    "dex": backend,
                    "address": pool.address,
                    "reserves": [str(r) for r in pool.reserves],
                    "price": format_price(reserve0, reserve1),
                }
        return prices
