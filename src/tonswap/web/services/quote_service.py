"""Quote service for estimating and preparing swaps.

This service queries the DEX backends for quotes and prepares unsigned
messages but does NOT sign or send anything. It backs both the WebSocket
dispatcher and the REST routes.
"""

import logging
from decimal import Decimal
from typing import Optional

from tonswap.config import Settings, get_settings
from tonswap.routing.aggregator import QuoteAggregator, min_received
from tonswap.routing.base import Asset, SwapIntent
from tonswap.web.contracts.messages import BuildMessage, EstimateMessage
from tonswap.web.contracts.quotes import BuildResult, EstimateResult
from tonswap.web.services.transaction_builder import TransactionBuilder

logger = logging.getLogger(__name__)

ALL_DEXES = "all"


class QuoteService:
    """Service for quotes, unsigned swaps and backend catalogs.

    This is a READ-ONLY service that does not execute any transactions.
    """

    def __init__(
        self,
        aggregator: QuoteAggregator,
        builder: Optional[TransactionBuilder] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.aggregator = aggregator
        self.builder = builder or TransactionBuilder(aggregator, self.settings)

    def _slippage(self, value: Optional[Decimal]) -> Decimal:
        return self.settings.default_slippage if value is None else value

    async def estimate(self, request: EstimateMessage) -> EstimateResult:
        """Best quote across backends with its slippage floor.

        Raises:
            MissingParameterError: invalid token reference
            AllBackendsUnavailableError: no backend produced a quote
        """
        from_asset = Asset.parse(request.from_token)
        to_asset = Asset.parse(request.to_token)
        slippage = self._slippage(request.slippage)

        result = await self.aggregator.estimate_best(from_asset, to_asset, request.amount)
        best = result.winner

        return EstimateResult(
            output_amount=str(best.output_amount),
            min_received=str(min_received(best.output_amount, slippage)),
            price_impact=str(best.price_impact),
            fee=str(best.fee),
            route=best.route,
            dex=result.winner_backend,
            slippage=slippage,
            comparison=result.comparison(),
        )

    async def build(self, request: BuildMessage) -> BuildResult:
        """Prepare the unsigned swap message for a build request.

        Raises:
            UnsupportedRouteError: TON -> TON
            AllBackendsUnavailableError: no quote to derive minReceived from
        """
        intent = SwapIntent(
            from_asset=Asset.parse(request.from_token),
            to_asset=Asset.parse(request.to_token),
            amount=request.amount,
            slippage=self._slippage(request.slippage),
            sender_address=request.sender_address,
            min_received=request.min_received,
            from_token=request.from_token,
            to_token=request.to_token,
        )
        built = await self.builder.build(intent)

        return BuildResult(
            transaction=built.transaction.to_wire(),
            from_token=request.from_token,
            to_token=request.to_token,
            amount=str(request.amount),
            min_received=str(built.min_received),
            sender_address=request.sender_address,
            estimated_gas=built.estimated_gas,
        )

    async def get_pools(self, dex: Optional[str] = None) -> dict[str, list[dict]]:
        """Normalized pools keyed by backend.

        Args:
            dex: Backend name, "all" or None for every backend. An unknown
                name selects no backend and yields an empty result.
        """
        if dex in (None, "", ALL_DEXES):
            pools = await self.aggregator.list_pools()
        else:
            if dex not in self.aggregator.backend_names:
                logger.debug(f"get_pools for unknown dex: {dex}")
            pools = await self.aggregator.list_pools(dex)
        return {name: [p.to_dict() for p in items] for name, items in pools.items()}

    async def get_assets(self) -> dict[str, list[dict]]:
        """Normalized assets keyed by backend."""
        assets = await self.aggregator.list_assets()
        return {name: [a.to_dict() for a in items] for name, items in assets.items()}
