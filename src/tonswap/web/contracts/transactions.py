"""Transaction payload contracts.

These contracts describe unsigned TON messages that the client signs and
sends itself. NO signing or broadcasting happens server-side.
"""

from typing import Optional

from pydantic import Field

from tonswap.web.contracts.messages import WireModel


class SwapInstruction(WireModel):
    """Inner operation carried by the message body."""

    op: str = Field(..., description="swap or transfer")
    pool_address: Optional[str] = Field(None, description="Target pool (asked token)")
    destination: Optional[str] = Field(None, description="Jetton transfer destination")
    amount: Optional[str] = Field(None, description="Jetton amount in base units")
    min_out: Optional[str] = Field(None, description="Minimum output in base units")
    recipient: Optional[str] = Field(None, description="Receiver of the swapped asset")
    forward_payload: Optional["SwapInstruction"] = Field(
        None, description="Operation forwarded with a jetton transfer"
    )


SwapInstruction.model_rebuild()


class SwapTransaction(WireModel):
    """An unsigned message for client-side signing.

    The client is responsible for:
    1. Signing this message with their wallet
    2. Sending it to the network
    """

    to: str = Field(..., description="Contract receiving the message")
    value: str = Field(..., description="Attached TON in nano units (decimal string)")
    payload: SwapInstruction = Field(..., description="Operation descriptor")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
