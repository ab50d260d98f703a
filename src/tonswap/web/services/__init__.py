"""Web services for quotes and unsigned swap messages.

SECURITY: These services MUST NOT sign or send messages. They CAN:
- Query DEX backends (pools, assets, estimates)
- Prepare unsigned messages for client signing
"""

from tonswap.web.services.quote_service import QuoteService
from tonswap.web.services.transaction_builder import BuiltSwap, TransactionBuilder

__all__ = [
    "BuiltSwap",
    "QuoteService",
    "TransactionBuilder",
]
