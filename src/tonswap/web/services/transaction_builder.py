"""Transaction builder for preparing unsigned swap messages.

This service builds unsigned DeDust swap messages for client-side signing.
NO signing or broadcasting happens here - this is non-custodial.

Branches by asset kind:
    TON    -> jetton: message to the native vault carrying the swapped TON
    jetton -> TON:    jetton transfer to the native vault with a forwarded swap
    jetton -> jetton: jetton transfer to the factory with a forwarded swap
    TON    -> TON:    rejected
"""

import logging
from dataclasses import dataclass
from typing import Optional

from tonswap.config import Settings, get_settings
from tonswap.errors import MissingParameterError, UnsupportedRouteError
from tonswap.routing.aggregator import QuoteAggregator, min_received
from tonswap.routing.base import Quote, SwapIntent
from tonswap.web.contracts.transactions import SwapInstruction, SwapTransaction

logger = logging.getLogger(__name__)


@dataclass
class BuiltSwap:
    """An unsigned swap message plus the floor it was built with."""

    transaction: SwapTransaction
    min_received: int
    estimated_gas: str


class TransactionBuilder:
    """Builds unsigned swap messages for client-side signing.

    This service NEVER:
    - Accesses private keys
    - Signs messages
    - Sends anything to the network

    It ONLY prepares message data for the client to sign locally.
    """

    def __init__(self, aggregator: QuoteAggregator, settings: Optional[Settings] = None):
        self.aggregator = aggregator
        self.settings = settings or get_settings()

    def build_native_to_jetton(self, intent: SwapIntent, min_out: int) -> SwapTransaction:
        """TON -> jetton: the vault receives the swapped TON itself."""
        return SwapTransaction(
            to=self.settings.dedust_vault_address,
            value=str(intent.amount),
            payload=SwapInstruction(
                op="swap",
                pool_address=intent.to_contract,
                min_out=str(min_out),
                recipient=intent.sender_address,
            ),
        )

    def build_jetton_to_native(self, intent: SwapIntent, min_out: int) -> SwapTransaction:
        """jetton -> TON: transfer to the vault, forwarding the swap."""
        return SwapTransaction(
            to=intent.from_contract,
            value=str(self.settings.jetton_to_native_forward_value),
            payload=SwapInstruction(
                op="transfer",
                destination=self.settings.dedust_vault_address,
                amount=str(intent.amount),
                forward_payload=SwapInstruction(
                    op="swap",
                    min_out=str(min_out),
                    recipient=intent.sender_address,
                ),
            ),
        )

    def build_jetton_to_jetton(self, intent: SwapIntent, min_out: int) -> SwapTransaction:
        """jetton -> jetton: transfer to the factory, forwarding the swap."""
        return SwapTransaction(
            to=intent.from_contract,
            value=str(self.settings.jetton_to_jetton_forward_value),
            payload=SwapInstruction(
                op="transfer",
                destination=self.settings.dedust_factory_address,
                amount=str(intent.amount),
                forward_payload=SwapInstruction(
                    op="swap",
                    pool_address=intent.to_contract,
                    min_out=str(min_out),
                    recipient=intent.sender_address,
                ),
            ),
        )

    async def resolve_min_received(self, intent: SwapIntent, quote: Optional[Quote] = None) -> int:
        """Use the caller's floor, else derive one from a quote and the slippage.

        Without a quote, a fresh one is taken from the default backend.
        """
        if intent.min_received is not None:
            return intent.min_received

        if quote is None:
            quote = await self.aggregator.estimate_with(
                self.settings.default_backend,
                intent.from_asset,
                intent.to_asset,
                intent.amount,
            )
        return min_received(quote.output_amount, intent.slippage)

    async def build(self, intent: SwapIntent, quote: Optional[Quote] = None) -> BuiltSwap:
        """Build the unsigned swap message for an intent.

        Args:
            intent: Swap intent; sender_address is required
            quote: Winning quote to derive the floor from, if already known

        Returns:
            BuiltSwap for the client to sign

        Raises:
            UnsupportedRouteError: TON -> TON
            MissingParameterError: missing sender or non-positive amount
            AllBackendsUnavailableError: no quote available to derive the floor
        """
        from_native = intent.from_asset.is_native
        to_native = intent.to_asset.is_native

        if from_native and to_native:
            raise UnsupportedRouteError("TON -> TON swap is not supported")
        if not intent.sender_address:
            raise MissingParameterError("Missing required parameters: senderAddress")
        if intent.amount <= 0:
            raise MissingParameterError("Amount must be a positive integer")

        min_out = await self.resolve_min_received(intent, quote)

        if from_native:
            transaction = self.build_native_to_jetton(intent, min_out)
        elif to_native:
            transaction = self.build_jetton_to_native(intent, min_out)
        else:
            transaction = self.build_jetton_to_jetton(intent, min_out)

        logger.info(
            f"Built swap {intent.from_asset.label}->{intent.to_asset.label} "
            f"amount={intent.amount} min_out={min_out} to={transaction.to}"
        )
        return BuiltSwap(
            transaction=transaction,
            min_received=min_out,
            estimated_gas="0" if from_native else transaction.value,
        )
