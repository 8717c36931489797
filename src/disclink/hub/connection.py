"""One downstream WebSocket client."""

from __future__ import annotations

import itertools
import time
from typing import Callable

from aiohttp import web

_ids = itertools.count(1)


class Connection:
    """Wraps a :class:`aiohttp.web.WebSocketResponse` with liveness bookkeeping."""

    def __init__(
        self,
        ws: web.WebSocketResponse,
        remote: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.id = next(_ids)
        self.ws = ws
        self.remote = remote
        self._clock = clock
        self.last_seen_at = clock()

    def touch(self) -> None:
        self.last_seen_at = self._clock()

    @property
    def closed(self) -> bool:
        return self.ws.closed

    async def send_text(self, text: str) -> None:
        await self.ws.send_str(text)

    async def close(self) -> None:
        await self.ws.close()

    def __repr__(self) -> str:
        return f"<Connection id={self.id} remote={self.remote}>"
