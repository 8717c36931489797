"""
Internal events drained by the controller's dispatch loop.

Upstream callbacks and the WebSocket handler never touch shared state
directly; they post one of these onto the controller queue and return.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from disclink.clients.upstream import Identity
from disclink.model import InboundMessage

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from disclink.hub.connection import Connection


@dataclass(slots=True)
class UpstreamReady:
    identity: Identity | None


@dataclass(slots=True)
class UpstreamResumed:
    pass


@dataclass(slots=True)
class UpstreamDisconnected:
    pass


@dataclass(slots=True)
class UpstreamMessage:
    message: InboundMessage


@dataclass(slots=True)
class ClientConnected:
    connection: "Connection"


@dataclass(slots=True)
class ClientFrame:
    connection: "Connection"
    raw: str


@dataclass(slots=True)
class ClientClosed:
    connection: "Connection"


Event = Union[
    UpstreamReady,
    UpstreamResumed,
    UpstreamDisconnected,
    UpstreamMessage,
    ClientConnected,
    ClientFrame,
    ClientClosed,
]

__all__ = [
    "ClientClosed",
    "ClientConnected",
    "ClientFrame",
    "Event",
    "UpstreamDisconnected",
    "UpstreamMessage",
    "UpstreamReady",
    "UpstreamResumed",
]
