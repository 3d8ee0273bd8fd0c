"""Tests for per-message dispatch and the inbound loop."""
from __future__ import annotations

import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect

from rendezvous.schemas.signal import SignalMessage
from rendezvous.services import protocol
from rendezvous.services.connection import ClientConnection
from rendezvous.services.errors import ProtocolViolation
from rendezvous.services.signaling import Hub


class ScriptedTransport:
    """Feeds a fixed list of frames, then reports the peer as gone."""

    def __init__(self, frames: list[dict | str]) -> None:
        self._frames = [frame if isinstance(frame, str) else json.dumps(frame) for frame in frames]
        self.sent: list[dict] = []

    async def receive_text(self) -> str:
        await asyncio.sleep(0)
        if not self._frames:
            raise WebSocketDisconnect(code=1000)
        return self._frames.pop(0)

    async def send_text(self, data: str) -> None:
        self.sent.append(json.loads(data))


@pytest.mark.asyncio
async def test_dispatch_requires_join_first():
    hub = Hub()
    client = ClientConnection(ScriptedTransport([]), connection_id="c1")

    with pytest.raises(ProtocolViolation):
        await protocol.dispatch(hub, client, SignalMessage(type="offer", sdp="x"))

    assert await hub.stats() == (0, 0)


@pytest.mark.asyncio
async def test_serve_connection_reports_errors_and_keeps_going():
    hub = Hub(grace_period=60)
    transport = ScriptedTransport(
        [
            {"type": "offer", "sdp": "early"},
            {"room": "alpha", "sessionId": "s1"},
            {"type": "join", "room": "", "sessionId": "s1"},
            {"type": "join", "room": "alpha"},
            {"type": "join", "room": "alpha", "sessionId": "s1"},
            {"type": "bogus"},
            {"sdp": "untyped"},
            {"type": "join", "room": "elsewhere", "sessionId": "s1"},
        ]
    )
    client = ClientConnection(transport, connection_id="c1")
    client.start()

    await protocol.serve_connection(hub, client)
    await client.close()

    assert transport.sent == [
        {"type": "error", "error": "must join first"},
        {"type": "error", "error": "must join first"},
        {"type": "error", "error": "room is required"},
        {"type": "error", "error": "sessionId is required"},
        {"type": "joined", "room": "alpha", "clientId": "c1"},
        {"type": "waiting", "status": "waiting"},
    ]
    assert hub.room("elsewhere") is None
    # The inbound loop ended, so the slot is now held for the grace period.
    assert client.disconnected_at is not None
    assert client.grace_task is not None

    await hub.shutdown()


@pytest.mark.asyncio
async def test_serve_connection_disconnects_once_on_malformed_frame(monkeypatch):
    hub = Hub(grace_period=60)
    calls: list[str] = []
    original = hub.handle_disconnect

    async def _record(client):
        calls.append(client.id)
        await original(client)

    monkeypatch.setattr(hub, "handle_disconnect", _record)

    client = ClientConnection(
        ScriptedTransport([{"type": "join", "room": "alpha", "sessionId": "s1"}, "{broken"]),
        connection_id="c1",
    )

    await protocol.serve_connection(hub, client)

    assert calls == ["c1"]
    assert hub.room("alpha").peers["c1"].disconnected_at is not None

    await hub.shutdown()


@pytest.mark.asyncio
async def test_relay_between_two_served_connections():
    hub = Hub(grace_period=60)
    receiver_transport = ScriptedTransport([])
    receiver = ClientConnection(receiver_transport, connection_id="c1")
    receiver.start()
    await hub.join(receiver, "alpha", "s1")

    sender_transport = ScriptedTransport(
        [
            {"type": "join", "room": "alpha", "sessionId": "s2"},
            {"type": "answer", "sdp": "v=0", "fromId": "forged"},
        ]
    )
    sender = ClientConnection(sender_transport, connection_id="c2")
    sender.start()

    await protocol.serve_connection(hub, sender)
    await sender.close()
    await receiver.close()

    assert receiver_transport.sent == [
        {"type": "joined", "room": "alpha", "clientId": "c1"},
        {"type": "waiting", "status": "waiting"},
        {"type": "peer-joined", "clientId": "c2", "offerer": False},
        {"type": "answer", "fromId": "c2", "targetId": "c1", "sdp": "v=0"},
        {"type": "peer-left", "clientId": "c2"},
        {"type": "waiting", "status": "waiting"},
    ]
    assert sender_transport.sent[-1] == {"type": "peer-joined", "clientId": "c1", "offerer": True}

    await hub.shutdown()
