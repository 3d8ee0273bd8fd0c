"""Error taxonomy for the signaling core.

Every :class:`SignalingError` is reported back to the offending connection
as an ``error`` frame and leaves the connection open. Transport failures are
raised as :class:`ConnectionClosed` and end the inbound loop instead.
"""
from __future__ import annotations


class SignalingError(Exception):
    """Base class for errors reported to the sender."""

    message = "signaling error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class ProtocolViolation(SignalingError):
    message = "must join first"


class JoinValidationError(SignalingError):
    """Join request is missing a required field."""


class MissingRoom(JoinValidationError):
    message = "room is required"


class MissingSession(JoinValidationError):
    message = "sessionId is required"


class CapacityError(SignalingError):
    """Room cannot take another connected occupant."""


class RoomFull(CapacityError):
    message = "room full"


class ConnectionClosed(Exception):
    """The transport is gone or delivered a frame that cannot be decoded."""
