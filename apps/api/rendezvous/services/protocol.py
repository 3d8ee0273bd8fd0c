"""Per-message dispatch for a signaling connection."""
from __future__ import annotations

import logging

from ..schemas.signal import RELAYED_TYPES, MessageType, SignalMessage
from .connection import ClientConnection
from .errors import ConnectionClosed, ProtocolViolation, SignalingError
from .signaling import Hub

logger = logging.getLogger(__name__)


async def dispatch(hub: Hub, client: ClientConnection, message: SignalMessage) -> None:
    """Route one inbound frame. Raises :class:`SignalingError` for the sender to see."""

    if not client.joined:
        if message.type != MessageType.JOIN.value:
            raise ProtocolViolation()
        await hub.join(client, message.room or "", message.session_id or "")
        return

    if message.type in RELAYED_TYPES:
        await hub.relay(client, message)
        return

    logger.debug("Ignoring %r from %s", message.type, client.id)


async def serve_connection(hub: Hub, client: ClientConnection) -> None:
    """Run the inbound loop until the transport goes away, then start the grace period."""

    try:
        while True:
            message = await client.next_inbound()
            try:
                await dispatch(hub, client, message)
            except SignalingError as exc:
                client.enqueue(SignalMessage(type=MessageType.ERROR.value, error=exc.message))
    except ConnectionClosed as exc:
        logger.debug("Connection %s closed: %s", client.id, exc)
    finally:
        await hub.handle_disconnect(client)
