"""
Upstream port.

The directory, queue and command handlers talk to the chat platform only
through :class:`UpstreamPort`. :class:`~disclink.clients.disc.DiscordUpstream`
is the production implementation; tests substitute small fakes that satisfy
the same protocol.

Connectivity is not part of the port: the controller tracks it on the shared
:class:`~disclink.controller.BridgeState` from ready/disconnect/resume events.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

from disclink.model import Channel, Guild


@dataclass(slots=True, frozen=True)
class Identity:
    """The authenticated upstream account."""

    id: str
    username: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username}


class UpstreamPort(Protocol):
    @property
    def identity(self) -> Identity | None: ...

    async def list_guilds(self) -> List[Guild]: ...

    async def fetch_channels(self, guild_id: str) -> List[Channel]: ...

    async def send(self, channel_id: str, content: str) -> None: ...

    async def fetch_history(self, channel_id: str, limit: int) -> List[Dict[str, Any]]: ...

    async def set_presence(self, text: str, kind: str) -> None: ...


__all__ = ["Identity", "UpstreamPort"]
