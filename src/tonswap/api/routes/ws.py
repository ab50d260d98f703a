"""WebSocket endpoint for estimates, builds and live price subscriptions."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def swap_socket(websocket: WebSocket):
    """One session per connection; each inbound frame runs in its own task."""
    state = websocket.app.state
    await websocket.accept()

    session = await state.registry.register(websocket.send_json)
    logger.info(f"WebSocket client connected: {session.id}")
    await state.dispatcher.welcome(session)

    pending: set[asyncio.Task] = set()
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            task = asyncio.create_task(state.dispatcher.dispatch(session, raw))
            pending.add(task)
            task.add_done_callback(pending.discard)
    except WebSocketDisconnect:
        pass
    finally:
        logger.info(f"WebSocket client disconnected: {session.id}")
        for task in pending:
            task.cancel()
        await state.manager.disconnect(session.id)
