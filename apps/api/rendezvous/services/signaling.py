"""In-memory WebRTC signaling hub.

The hub owns every room and is the single serialization point for room state:
join, relay lookup, disconnect and finalize all run under one asyncio lock.
Outbound frames are only enqueued while the lock is held, never written.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from ..schemas.signal import MessageType, SignalMessage
from .errors import MissingRoom, MissingSession, RoomFull
from .rooms import ROOM_CAPACITY, Occupant, Room, cancel_grace

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 5.0


def _message(kind: MessageType, **fields: Any) -> SignalMessage:
    return SignalMessage(type=kind.value, **fields)


class Hub:
    """Process-wide registry of signaling rooms."""

    def __init__(self, grace_period: float = DEFAULT_GRACE_PERIOD) -> None:
        self._rooms: Dict[str, Room] = {}
        self._lock = asyncio.Lock()
        self._grace_period = grace_period

    @property
    def grace_period(self) -> float:
        return self._grace_period

    def room(self, name: str) -> Optional[Room]:
        return self._rooms.get(name)

    def get_or_create_room(self, name: str) -> Room:
        """Return the room called ``name``, creating it if needed. Caller holds the lock."""

        room = self._rooms.get(name)
        if room is None:
            room = Room(name=name)
            self._rooms[name] = room
            logger.debug("Created room %s", name)
        return room

    def remove_room_if_empty(self, name: str) -> bool:
        """Drop the room once it has no occupants. Caller holds the lock."""

        room = self._rooms.get(name)
        if room is None or not room.is_empty():
            return False
        del self._rooms[name]
        logger.info("Room %s closed", name)
        return True

    async def join(self, client: Occupant, room_name: str, session_id: str) -> None:
        """Bind ``client`` to ``room_name`` under ``session_id``.

        A record already holding the same session is replaced unconditionally,
        whether it is live or waiting out its grace period. Raises
        :class:`MissingRoom`, :class:`MissingSession` or :class:`RoomFull`
        without touching any state.
        """

        if not room_name:
            raise MissingRoom()
        if not session_id:
            raise MissingSession()

        async with self._lock:
            room = self.get_or_create_room(room_name)

            existing = room.sessions.get(session_id)
            if existing is not None:
                logger.debug("Session %s in room %s replaces %s", session_id, room_name, existing.id)
                room.evict(existing)

            if room.connected_count() >= ROOM_CAPACITY:
                logger.info("Rejected session %s: room %s is full", session_id, room_name)
                raise RoomFull()

            if len(room) >= ROOM_CAPACITY:
                stale = room.first_disconnected()
                if stale is not None:
                    logger.debug("Reclaiming grace slot of %s in room %s", stale.id, room_name)
                    room.evict(stale)

            client.room = room_name
            client.session_id = session_id
            room.add(client)
            logger.info("Connection %s joined room %s (session %s)", client.id, room_name, session_id)

            client.enqueue(_message(MessageType.JOINED, room=room_name, client_id=client.id))

            other = room.other_connected_peer(client.id)
            if other is None:
                client.enqueue(_message(MessageType.WAITING, status="waiting"))
                return

            # The later joiner always makes the offer.
            other.enqueue(_message(MessageType.PEER_JOINED, client_id=client.id, offerer=False))
            client.enqueue(_message(MessageType.PEER_JOINED, client_id=other.id, offerer=True))

    async def relay(self, client: Occupant, message: SignalMessage) -> bool:
        """Forward a negotiation payload to the addressed or the other occupant.

        Returns False when there is nobody to deliver to. That is an expected
        race around disconnects, so nothing is reported to the sender.
        """

        async with self._lock:
            room = self._rooms.get(client.room)
            if room is None or not room.holds(client):
                logger.debug("Dropping %s from unbound connection %s", message.type, client.id)
                return False

            if message.target_id:
                recipient = room.peers.get(message.target_id)
            else:
                recipient = room.other_connected_peer(client.id)

            if recipient is None or recipient is client or recipient.disconnected_at is not None:
                logger.debug("No recipient for %s from %s in room %s", message.type, client.id, room.name)
                return False

            forwarded = SignalMessage(
                type=message.type,
                from_id=client.id,
                target_id=recipient.id,
                sdp=message.sdp,
                candidate=message.candidate,
            )
            return recipient.enqueue(forwarded)

    async def handle_disconnect(self, client: Occupant) -> None:
        """Mark ``client`` as gone and arm its grace timer."""

        async with self._lock:
            room = self._rooms.get(client.room)
            if room is None or not room.holds(client):
                return

            client.disconnected_at = time.time()
            cancel_grace(client)

            other = room.other_connected_peer(client.id)
            if other is not None:
                other.enqueue(_message(MessageType.PEER_LEFT, client_id=client.id))
                other.enqueue(_message(MessageType.WAITING, status="waiting"))

            client.grace_task = asyncio.create_task(
                self._expire(room.name, client.id, client.session_id),
                name=f"signaling-grace-{client.id}",
            )
            logger.info("Connection %s left room %s, holding slot for %.1fs", client.id, room.name, self._grace_period)

    async def _expire(self, room_name: str, client_id: str, session_id: str) -> None:
        await asyncio.sleep(self._grace_period)
        await self.finalize_disconnect(room_name, client_id, session_id)

    async def finalize_disconnect(self, room_name: str, client_id: str, session_id: str) -> bool:
        """Remove a disconnected occupant whose grace period ran out.

        Re-checks state first: the slot may have been reclaimed by a rejoin or
        reused since the timer was armed, in which case nothing happens.
        """

        async with self._lock:
            room = self._rooms.get(room_name)
            if room is None:
                return False

            peer = room.peers.get(client_id)
            if peer is None or peer.session_id != session_id:
                return False
            if peer.disconnected_at is None:
                return False

            room.evict(peer)
            logger.info("Connection %s removed from room %s after grace period", client_id, room_name)
            self.remove_room_if_empty(room_name)
            return True

    async def stats(self) -> tuple[int, int]:
        """Return ``(rooms, occupants)`` as seen under the lock."""

        async with self._lock:
            return len(self._rooms), sum(len(room) for room in self._rooms.values())

    async def shutdown(self) -> None:
        """Cancel every pending grace timer."""

        async with self._lock:
            for room in self._rooms.values():
                for peer in room.peers.values():
                    cancel_grace(peer)
