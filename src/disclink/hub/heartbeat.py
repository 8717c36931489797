"""Application-level heartbeat and stale-client eviction."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from disclink.config import relay

from . import frames
from .fanout import FanoutHub

logger = logging.getLogger(__name__)


class Heartbeat:
    def __init__(self, hub: FanoutHub, clock: Callable[[], float] = time.monotonic) -> None:
        self._hub = hub
        self._clock = clock
        self._task: asyncio.Task | None = None

    async def sweep(self) -> int:
        """Close stale connections and probe the rest. Returns the number closed."""

        now = self._clock()
        closed = 0
        for connection in self._hub.connections:
            idle = now - connection.last_seen_at
            if idle > relay.HEARTBEAT_STALE:
                logger.info("Closing stale client %r (idle %.1fs)", connection, idle)
                self._hub.remove(connection)
                closed += 1
                try:
                    await connection.close()
                except Exception as exc:
                    logger.debug("Close of %r failed: %s", connection, exc)
                continue
            await self._hub.send(connection, frames.HEARTBEAT)
        return closed

    async def _periodic(self) -> None:
        # First sweep one interval after start; a failed sweep keeps the schedule.
        while True:
            await asyncio.sleep(relay.HEARTBEAT_INTERVAL)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Heartbeat sweep failed")

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._periodic())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if not task:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:  # pragma: no cover - normal cancellation
            pass
