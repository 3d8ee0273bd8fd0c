"""Signaling WebSocket endpoint."""
from __future__ import annotations

import contextlib
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..core.config import Settings
from ..services.connection import ClientConnection
from ..services.protocol import serve_connection
from ..services.signaling import Hub

logger = logging.getLogger(__name__)

router = APIRouter()


def get_hub(websocket: WebSocket) -> Hub:
    return websocket.app.state.hub


def get_ws_settings(websocket: WebSocket) -> Settings:
    return websocket.app.state.settings


@router.websocket("/ws")
async def signaling_endpoint(
    websocket: WebSocket,
    hub: Hub = Depends(get_hub),
    settings: Settings = Depends(get_ws_settings),
) -> None:
    """Pair two peers per room and relay offers, answers and ICE candidates."""

    await websocket.accept()

    client = ClientConnection(websocket, queue_size=settings.outbound_queue_size)
    client.start()
    logger.debug("Connection %s opened", client.id)

    try:
        await serve_connection(hub, client)
    finally:
        await client.close()
        # Send a close frame when the server ends the session itself.
        with contextlib.suppress(RuntimeError, WebSocketDisconnect, OSError):
            await websocket.close()
        logger.debug("Connection %s finished", client.id)
