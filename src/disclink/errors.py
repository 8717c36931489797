"""
Failure taxonomy for the bridge.

Only :class:`AuthError` is fatal. Every other error is caught at the boundary
of the component that raised it and turned into an ``ack`` frame or a log
line, so nothing reaches the connection-handling loop uncaught.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for bridge failures."""


class AuthError(BridgeError):
    """The upstream credential was rejected; the process cannot continue."""


class DirectoryError(BridgeError):
    """Fetching one guild's channels failed; that guild degrades to empty."""

    def __init__(self, guild_id: str, cause: BaseException | None = None) -> None:
        super().__init__(f"failed to fetch channels for guild {guild_id}: {cause}")
        self.guild_id = guild_id
        self.cause = cause


class ResolutionError(BridgeError):
    """The requested guild/channel is not in the directory. Never retried."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message)


class TransportError(BridgeError):
    """A send was attempted while connected and the upstream call failed."""


class AvailabilityError(BridgeError):
    """The upstream is not connected; the request is parked, not failed."""


class PersistenceError(BridgeError):
    """Reading or writing the state file failed."""


__all__ = [
    "AuthError",
    "AvailabilityError",
    "BridgeError",
    "DirectoryError",
    "PersistenceError",
    "ResolutionError",
    "TransportError",
]
