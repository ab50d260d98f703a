"""Inbound WebSocket message contracts.

Every message carries a `type` and an opaque `requestId` that is echoed
back on the response.
"""

from decimal import Decimal
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from tonswap.errors import MissingParameterError


class WireModel(BaseModel):
    """Base for camelCase wire contracts."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class InboundMessage(WireModel):
    """Envelope shared by every inbound message."""

    type: Optional[str] = Field(None, description="Message kind")
    request_id: Optional[Any] = Field(None, description="Opaque id echoed on the response")


class SubscribePricesMessage(InboundMessage):
    """subscribe_prices {pairs[], interval}"""

    pairs: list[str] = Field(default_factory=list, description="Pair keys, e.g. TON/USDT")
    interval: Optional[int] = Field(None, gt=0, description="Refresh period in milliseconds")

    @field_validator("pairs", mode="before")
    @classmethod
    def _none_is_all(cls, value: Any) -> Any:
        return [] if value is None else value


class EstimateMessage(InboundMessage):
    """estimate {fromToken, toToken, amount, slippage?}"""

    from_token: str = Field(..., min_length=1, description="Source token address or 'native'")
    to_token: str = Field(..., min_length=1, description="Destination token address or 'native'")
    amount: int = Field(..., gt=0, description="Input amount in base units")
    slippage: Optional[Decimal] = Field(
        None, ge=0, lt=100, description="Slippage tolerance in percent"
    )


class BuildMessage(EstimateMessage):
    """build {fromToken, toToken, amount, minReceived?, senderAddress, slippage?}"""

    sender_address: str = Field(..., min_length=1, description="Wallet that signs and receives")
    min_received: Optional[int] = Field(
        None, ge=0, description="Minimum output; derived from a fresh quote when absent"
    )

    @field_validator("min_received", mode="before")
    @classmethod
    def _empty_is_absent(cls, value: Any) -> Any:
        # Zero or empty means "not supplied": a zero minimum would disable protection
        if value in (None, "", 0, "0"):
            return None
        return value


class GetPoolsMessage(InboundMessage):
    """get_pools {dex?}"""

    dex: Optional[str] = Field(None, description="dedust, stonfi or all")


MessageT = TypeVar("MessageT", bound=InboundMessage)


def parse_message(model: type[MessageT], data: dict) -> MessageT:
    """Validate an inbound message, mapping failures to MissingParameterError."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        missing = []
        invalid = []
        for error in e.errors():
            name = str(error["loc"][0]) if error["loc"] else "?"
            name = model.model_fields[name].alias or name if name in model.model_fields else name
            if error["type"] == "missing":
                missing.append(name)
            else:
                invalid.append(name)
        if missing:
            raise MissingParameterError(
                f"Missing required parameters: {', '.join(missing)}"
            ) from e
        raise MissingParameterError(f"Invalid parameters: {', '.join(invalid)}") from e
