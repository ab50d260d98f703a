"""Request and response contracts for the web layer.

These Pydantic models define the wire interface for WebSocket and REST
clients. Wire field names are camelCase.
"""

from tonswap.web.contracts.messages import (
    BuildMessage,
    EstimateMessage,
    GetPoolsMessage,
    InboundMessage,
    SubscribePricesMessage,
    WireModel,
    parse_message,
)
from tonswap.web.contracts.quotes import BuildResult, EstimateResult
from tonswap.web.contracts.transactions import SwapInstruction, SwapTransaction

__all__ = [
    # Inbound messages
    "WireModel",
    "InboundMessage",
    "SubscribePricesMessage",
    "EstimateMessage",
    "BuildMessage",
    "GetPoolsMessage",
    "parse_message",
    # Results
    "EstimateResult",
    "BuildResult",
    # Transactions
    "SwapInstruction",
    "SwapTransaction",
]
