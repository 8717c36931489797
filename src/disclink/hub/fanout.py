"""
Registry of live client connections and frame fan-out.

A frame is serialized once per broadcast. A connection that fails to accept a
frame is dropped from the registry and logged; the remaining connections still
receive it.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, List

from . import frames
from .connection import Connection

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from disclink.controller import BridgeState

logger = logging.getLogger(__name__)


def encode(frame: Dict[str, Any]) -> str:
    return json.dumps(frame, ensure_ascii=False)


class FanoutHub:
    def __init__(self) -> None:
        self._connections: Dict[int, Connection] = {}

    def add(self, connection: Connection) -> None:
        self._connections[connection.id] = connection
        logger.info("Client connected %s (%d open)", connection.remote, len(self._connections))

    def remove(self, connection: Connection) -> bool:
        if self._connections.pop(connection.id, None) is None:
            return False
        logger.info("Client disconnected %s (%d open)", connection.remote, len(self._connections))
        return True

    @property
    def connections(self) -> List[Connection]:
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return isinstance(connection, Connection) and connection.id in self._connections

    async def _deliver(self, connection: Connection, text: str) -> bool:
        if connection.closed:
            self.remove(connection)
            return False
        try:
            await connection.send_text(text)
        except Exception as exc:
            logger.warning("Dropping %r after failed send: %s", connection, exc)
            self.remove(connection)
            return False
        return True

    async def send(self, connection: Connection, frame: Dict[str, Any]) -> bool:
        """Send ``frame`` to a single connection."""

        return await self._deliver(connection, encode(frame))

    async def broadcast(self, frame: Dict[str, Any]) -> int:
        """Send ``frame`` to every open connection; return how many accepted it."""

        text = encode(frame)
        delivered = 0
        for connection in self.connections:
            if await self._deliver(connection, text):
                delivered += 1
        return delivered

    async def send_initial_state(self, connection: Connection, state: "BridgeState") -> None:
        """Greet a new client with status, readiness and the cached directory.

        Reads only the in-memory snapshot; never triggers a rebuild.
        """

        await self.send(connection, frames.bridge_status(state))
        await self.send(connection, frames.ready(state.directory.ready))
        if state.directory.servers:
            await self.send(connection, frames.server_list(state.directory.servers))
