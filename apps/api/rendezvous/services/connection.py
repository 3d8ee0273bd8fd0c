"""Connection endpoint wrapping one signaling WebSocket.

Each endpoint runs two loops: the inbound loop (driven by the protocol layer
through :meth:`ClientConnection.next_inbound`) and a writer task draining a
bounded outbound queue. Enqueueing never blocks; a stalled peer loses
messages instead of stalling the hub.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import secrets
from typing import Optional, Protocol

from fastapi import WebSocketDisconnect
from pydantic import ValidationError

from ..schemas.signal import SignalMessage
from .errors import ConnectionClosed

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 16

_CLOSE = object()


class TextTransport(Protocol):
    async def receive_text(self) -> str: ...

    async def send_text(self, data: str) -> None: ...


def new_connection_id() -> str:
    """Return a fresh 16-character hex identifier."""

    return secrets.token_hex(8)


class ClientConnection:
    """One participant's transport plus its room binding."""

    def __init__(
        self,
        transport: TextTransport,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        connection_id: Optional[str] = None,
    ) -> None:
        self.id = connection_id or new_connection_id()
        self.room = ""
        self.session_id = ""
        self.disconnected_at: Optional[float] = None
        self.grace_task: Optional[asyncio.Task] = None
        self._transport = transport
        self._outbound: asyncio.Queue[SignalMessage | object] = asyncio.Queue(maxsize=queue_size)
        self._writer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def joined(self) -> bool:
        return bool(self.room)

    def enqueue(self, message: SignalMessage) -> bool:
        """Queue ``message`` for delivery; return False when it was dropped."""

        if self._closed:
            return False
        try:
            self._outbound.put_nowait(message)
        except asyncio.QueueFull:
            logger.debug("Outbound queue full for %s, dropping %s", self.id, message.type)
            return False
        return True

    async def next_inbound(self) -> SignalMessage:
        try:
            raw = await self._transport.receive_text()
        except WebSocketDisconnect as exc:
            raise ConnectionClosed(f"peer closed with code {exc.code}") from exc
        except (KeyError, RuntimeError) as exc:
            # Binary frame or a receive after the socket already went away.
            raise ConnectionClosed(str(exc)) from exc

        try:
            return SignalMessage.model_validate_json(raw)
        except ValidationError as exc:
            logger.debug("Malformed frame from %s: %s", self.id, exc)
            raise ConnectionClosed("malformed frame") from exc

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop(), name=f"signaling-writer-{self.id}")

    async def _write_loop(self) -> None:
        while True:
            message = await self._outbound.get()
            if not isinstance(message, SignalMessage):
                return
            try:
                await self._transport.send_text(message.to_wire())
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.debug("Write to %s failed, stopping writer: %s", self.id, exc)
                return

    async def close(self) -> None:
        """Stop accepting messages and wait for the writer to flush what it can."""

        self._closed = True
        writer = self._writer
        if writer is None:
            return
        try:
            self._outbound.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
