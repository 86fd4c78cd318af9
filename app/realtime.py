"""WebSocket channel carrying ``temperatures-update`` messages."""

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket

from services.broadcaster import REQUEST_EVENT
from services.monitor import MonitorContext

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_frame(text: Optional[str], session_id: str) -> None:
    """Inbound frames carry no behaviour; ``request-data`` is only logged."""
    if text is None:
        return
    try:
        message = json.loads(text)
    except ValueError:
        logger.debug("Ignoring malformed frame", extra={"session_id": session_id})
        return
    if isinstance(message, dict) and message.get("event") == REQUEST_EVENT:
        logger.info("Client requested initial data", extra={"session_id": session_id})


@router.websocket("/ws")
async def temperatures_socket(websocket: WebSocket) -> None:
    monitor: MonitorContext = websocket.app.state.monitor
    await websocket.accept()
    session_id = await monitor.connect(websocket)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            _handle_frame(frame.get("text"), session_id)
    finally:
        monitor.disconnect(session_id)
