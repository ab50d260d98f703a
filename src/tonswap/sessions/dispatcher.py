"""Inbound message dispatch for WebSocket sessions.

Failures are answered on the same connection as typed error frames; a bad
message never closes the connection.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Optional

from tonswap.errors import MalformedMessageError, SwapServiceError
from tonswap.sessions.manager import SubscriptionManager, now_ms
from tonswap.sessions.registry import Session
from tonswap.web.contracts.messages import (
    BuildMessage,
    EstimateMessage,
    GetPoolsMessage,
    SubscribePricesMessage,
    parse_message,
)
from tonswap.web.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

Handler = Callable[[Session, dict], Awaitable[Optional[dict]]]

# Error frame type per request type
ERROR_TYPES = {
    "estimate": "estimate_error",
    "build": "build_error",
    "get_pools": "pools_error",
    "get_assets": "assets_error",
}


def decode_frame(raw: Any) -> dict:
    """Decode one text frame into a message object."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError("Invalid message format") from e
    if not isinstance(data, dict):
        raise MalformedMessageError("Invalid message format")
    return data


class MessageDispatcher:
    """Routes inbound frames to handlers and sends their responses."""

    def __init__(self, manager: SubscriptionManager, quotes: QuoteService):
        self.manager = manager
        self.quotes = quotes
        self._handlers: dict[str, Handler] = {
            "subscribe_prices": self._subscribe_prices,
            "unsubscribe_prices": self._unsubscribe_prices,
            "estimate": self._estimate,
            "build": self._build,
            "get_pools": self._get_pools,
            "get_assets": self._get_assets,
            "ping": self._ping,
        }

    @property
    def message_types(self) -> list[str]:
        return list(self._handlers)

    async def welcome(self, session: Session) -> None:
        await session.send({
            "type": "connected",
            "clientId": session.id,
            "message": "Connected to TON Swap Server",
            "timestamp": now_ms(),
        })

    async def dispatch(self, session: Session, raw: Any) -> None:
        """Handle one inbound frame and send the response, if any."""
        try:
            data = decode_frame(raw)
        except MalformedMessageError as e:
            logger.warning(f"WS message parse error from {session.id}: {e}")
            await session.send({"type": "error", "error": e.message, "errorKind": e.kind})
            return

        msg_type = data.get("type")
        request_id = data.get("requestId")
        logger.debug(f"WS message from {session.id}: {msg_type}")

        handler = self._handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            await session.send({
                "type": "error",
                "error": "Unknown message type",
                "receivedType": msg_type,
                "requestId": request_id,
            })
            return

        try:
            response = await handler(session, data)
        except SwapServiceError as e:
            logger.info(f"{msg_type} from {session.id} failed: {e.kind}: {e.message}")
            response = self._error_frame(msg_type, e.message, e.kind)
        except Exception as e:
            logger.exception(f"WS {msg_type} error for {session.id}")
            response = self._error_frame(msg_type, str(e) or type(e).__name__, "InternalError")

        if response is not None:
            response.setdefault("requestId", request_id)
            await session.send(response)

    @staticmethod
    def _error_frame(msg_type: str, error: str, kind: str) -> dict:
        return {
            "type": ERROR_TYPES.get(msg_type, "error"),
            "error": error,
            "errorKind": kind,
        }

    async def _subscribe_prices(self, session: Session, data: dict) -> Optional[dict]:
        message = parse_message(SubscribePricesMessage, data)
        subscription = await self.manager.subscribe(session.id, message.pairs, message.interval)
        if subscription is None:
            return None
        return {
            "type": "subscribed",
            "pairs": subscription.pairs,
            "interval": subscription.interval_ms,
            "message": "Price subscription active",
        }

    async def _unsubscribe_prices(self, session: Session, data: dict) -> dict:
        was_subscribed = await self.manager.unsubscribe(session.id)
        return {
            "type": "unsubscribed",
            "wasSubscribed": was_subscribed,
            "message": "Price subscription cancelled" if was_subscribed else "No active subscription",
        }

    async def _estimate(self, session: Session, data: dict) -> dict:
        message = parse_message(EstimateMessage, data)
        result = await self.quotes.estimate(message)
        return {
            "type": "estimate_result",
            **result.model_dump(by_alias=True, mode="json"),
            "timestamp": now_ms(),
        }

    async def _build(self, session: Session, data: dict) -> dict:
        message = parse_message(BuildMessage, data)
        result = await self.quotes.build(message)
        return {
            "type": "build_result",
            **result.model_dump(by_alias=True, mode="json"),
            "timestamp": now_ms(),
        }

    async def _get_pools(self, session: Session, data: dict) -> dict:
        message = parse_message(GetPoolsMessage, data)
        pools = await self.quotes.get_pools(message.dex)
        return {
            "type": "pools_result",
            "success": True,
            "pools": pools,
            "timestamp": now_ms(),
        }

    async def _get_assets(self, session: Session, data: dict) -> dict:
        assets = await self.quotes.get_assets()
        return {
            "type": "assets_result",
            "success": True,
            **assets,
            "timestamp": now_ms(),
        }

    async def _ping(self, session: Session, data: dict) -> dict:
        return {"type": "pong", "timestamp": now_ms()}
