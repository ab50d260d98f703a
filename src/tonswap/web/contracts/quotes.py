"""Quote and build response contracts."""

from decimal import Decimal
from typing import Any, Optional

from pydantic import Field

from tonswap.web.contracts.messages import WireModel


class EstimateResult(WireModel):
    """Body of an estimate_result frame."""

    success: bool = True
    output_amount: str = Field(..., description="Best output in base units")
    min_received: str = Field(..., description="Output floor after slippage")
    price_impact: str = Field(..., description="Price impact in percent")
    fee: str = Field(..., description="Fee in base units")
    route: str = Field(..., description="pool, direct, estimated or backend name")
    dex: str = Field(..., description="Winning backend")
    slippage: Decimal = Field(..., description="Slippage tolerance used, in percent")
    comparison: dict[str, Optional[dict[str, Any]]] = Field(
        default_factory=dict, description="Every backend's quote (null when none)"
    )


class BuildResult(WireModel):
    """Body of a build_result frame."""

    success: bool = True
    transaction: dict[str, Any] = Field(..., description="Unsigned message")
    from_token: str
    to_token: str
    amount: str
    min_received: str
    sender_address: str
    estimated_gas: str = Field(..., description="TON attached to cover fees")
