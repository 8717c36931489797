"""
Idempotent outbound send queue.

Each request carries a client-chosen ``ref``. A ref found in the processed set
is acknowledged as skipped without touching the upstream. While the upstream is
connected a request is delivered immediately; otherwise it is parked (one
entry per ref) and replayed once the connection comes back.

Acknowledgements::

    {"type": "ack", "ok": true,  "ref": r}                     delivered
    {"type": "ack", "ok": true,  "ref": r, "skipped": true}    already delivered
    {"type": "ack", "ok": false, "ref": r, "queued": true}     parked (not terminal)
    {"type": "ack", "ok": false, "ref": r, "error": "..."}     failed

Terminal acks are broadcast; the queued ack goes to the submitting client.
All deliveries share one lock, so the processed-set check and the record of a
successful send never interleave with another delivery.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable

from disclink.clients.upstream import UpstreamPort
from disclink.config import relay
from disclink.directory.cache import DirectoryCache
from disclink.errors import AvailabilityError, ResolutionError, TransportError
from disclink.hub.fanout import FanoutHub
from disclink.model import Ack, SendRequest

from .backoff import backoff_delay

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from disclink.controller import BridgeState
    from disclink.hub.connection import Connection

logger = logging.getLogger(__name__)


class SendQueue:
    def __init__(
        self,
        state: "BridgeState",
        directory: DirectoryCache,
        upstream: UpstreamPort,
        hub: FanoutHub,
        persist: Callable[[], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._state = state
        self._directory = directory
        self._upstream = upstream
        self._hub = hub
        self._persist = persist or (lambda: None)
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._replay_task: asyncio.Task | None = None

    @property
    def replaying(self) -> bool:
        return self._replay_task is not None and not self._replay_task.done()

    async def _emit(self, ack: Ack, origin: "Connection | None" = None) -> None:
        if ack.terminal or origin is None:
            await self._hub.broadcast(ack.to_message())
        else:
            await self._hub.send(origin, ack.to_message())

    async def submit(self, request: SendRequest, origin: "Connection | None" = None) -> Ack:
        """Deliver, skip or park ``request`` and emit the matching ack."""

        if request.ref in self._state.processed:
            logger.info("Skipping already-processed ref %s", request.ref)
            ack = Ack(request.ref, ok=True, skipped=True)
        else:
            try:
                ack = await self._deliver(request)
            except AvailabilityError:
                return await self.park(request, origin)
            except ResolutionError as exc:
                logger.warning("Send %s to %s failed: %s", request.ref, request.target.describe(), exc)
                ack = Ack(request.ref, ok=False, error=str(exc))
            except TransportError as exc:
                logger.warning("Send %s failed: %s", request.ref, exc)
                ack = Ack(request.ref, ok=False, error=str(exc) or "send failed")
        await self._emit(ack, origin)
        return ack

    async def park(self, request: SendRequest, origin: "Connection | None" = None) -> Ack:
        """Hold ``request`` until the upstream reconnects."""

        if request.ref in self._state.parked:
            logger.info("Send %s already queued", request.ref)
        else:
            self._state.parked[request.ref] = request
            self._persist()
            logger.info("Queued send %s since upstream is not connected", request.ref)
        ack = Ack(request.ref, ok=False, queued=True)
        await self._emit(ack, origin)
        return ack

    async def _deliver(self, request: SendRequest) -> Ack:
        """Send one request.

        Raises AvailabilityError while the upstream is down, ResolutionError
        for an unknown target and TransportError when the send itself fails.
        """

        async with self._lock:
            if request.ref in self._state.processed:
                return Ack(request.ref, ok=True, skipped=True)
            if not self._state.upstream_connected:
                raise AvailabilityError("upstream not connected")

            await self._directory.wait_idle()
            resolved = self._directory.resolve_target(request.target)
            if resolved is None:
                raise ResolutionError()
            guild, channel = resolved

            try:
                await self._upstream.send(channel.id, request.content)
            except (ResolutionError, TransportError):
                raise
            except Exception as exc:
                raise TransportError(str(exc)) from exc

            self._state.processed.add(request.ref)
            self._persist()
            logger.info("Sent %s to %s/#%s", request.ref, guild.name, channel.name)
            return Ack(request.ref, ok=True)

    def start_replay(self) -> asyncio.Task | None:
        """Start draining parked requests unless a replay is already running."""

        if self.replaying:
            return self._replay_task
        if not self._state.parked:
            return None
        self._replay_task = asyncio.create_task(self.replay())
        return self._replay_task

    async def replay(self) -> int:
        """Drain parked requests while connected. Returns the number delivered."""

        parked = self._state.parked
        logger.info("Replaying %d queued send(s)", len(parked))
        delivered = 0
        try:
            while parked and self._state.upstream_connected:
                ref = next(iter(parked))
                request = parked.pop(ref)
                try:
                    ack = await self._deliver(request)
                except AvailabilityError:
                    # Put it back at the head so order survives the next replay.
                    rest = dict(parked)
                    parked.clear()
                    parked[ref] = request
                    parked.update(rest)
                    break
                except ResolutionError as exc:
                    logger.warning("Dropping queued send %s: %s", ref, exc)
                    ack = Ack(ref, ok=False, error=str(exc))
                except TransportError as exc:
                    request.tries += 1
                    if request.tries < relay.MAX_SEND_RETRIES:
                        delay = backoff_delay(request.tries)
                        logger.warning(
                            "Queued send %s failed (%s); retry %d in %.1fs",
                            ref,
                            exc,
                            request.tries,
                            delay,
                        )
                        request.queued_at = time.time()
                        parked[ref] = request
                        self._persist()
                        await self._sleep(delay)
                        continue
                    logger.error("Dropping queued send %s after %d tries", ref, request.tries)
                    ack = Ack(ref, ok=False, error="max-retries")

                self._persist()
                await self._emit(ack)
                if ack.ok and not ack.skipped:
                    delivered += 1
                    await self._sleep(relay.REPLAY_PACING)
        finally:
            self._persist()
            logger.info("Replay finished; delivered=%d remaining=%d", delivered, len(parked))
        return delivered
