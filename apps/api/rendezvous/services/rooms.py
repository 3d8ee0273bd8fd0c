"""Two-party room bookkeeping.

A room indexes its occupants twice: by connection id (one live transport) and
by session id (the durable, client-chosen identity that survives reconnects).
All methods assume the caller holds the hub lock.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from ..schemas.signal import SignalMessage

ROOM_CAPACITY = 2


class Occupant(Protocol):
    """What a room needs from a connection endpoint."""

    id: str
    room: str
    session_id: str
    disconnected_at: Optional[float]
    grace_task: Optional[asyncio.Task]

    def enqueue(self, message: SignalMessage) -> bool: ...


def cancel_grace(occupant: Occupant) -> None:
    """Cancel a pending finalize timer, unless it is the task running right now."""

    task = occupant.grace_task
    occupant.grace_task = None
    if task is None or task.done():
        return
    if task is asyncio.current_task():
        return
    task.cancel()


@dataclass(slots=True)
class Room:
    name: str
    peers: Dict[str, Occupant] = field(default_factory=dict)
    sessions: Dict[str, Occupant] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.peers)

    def is_empty(self) -> bool:
        return not self.peers

    def connected_count(self) -> int:
        return sum(1 for peer in self.peers.values() if peer.disconnected_at is None)

    def other_connected_peer(self, exclude_id: str) -> Optional[Occupant]:
        for peer_id, peer in self.peers.items():
            if peer_id == exclude_id:
                continue
            if peer.disconnected_at is None:
                return peer
        return None

    def first_disconnected(self) -> Optional[Occupant]:
        for peer in self.peers.values():
            if peer.disconnected_at is not None:
                return peer
        return None

    def holds(self, occupant: Occupant) -> bool:
        """True when ``occupant`` is the record stored under its connection id."""

        return self.peers.get(occupant.id) is occupant

    def add(self, occupant: Occupant) -> None:
        self.peers[occupant.id] = occupant
        self.sessions[occupant.session_id] = occupant

    def evict(self, occupant: Occupant) -> None:
        """Drop ``occupant`` from both indices and disarm its grace timer."""

        cancel_grace(occupant)
        if self.peers.get(occupant.id) is occupant:
            del self.peers[occupant.id]
        if self.sessions.get(occupant.session_id) is occupant:
            del self.sessions[occupant.session_id]
