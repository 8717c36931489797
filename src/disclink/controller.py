"""
Bridge controller.

:class:`BridgeState` is the single owner of everything that is shared between
components: the directory snapshot, the processed refs, the parked sends and
upstream connectivity. :class:`BridgeController` wires the components around
that state and drains one queue of :mod:`disclink.events` on a single dispatch
loop. Anything that waits on the upstream (builds, replays, sends, history
fetches) is spawned as a task so the loop keeps serving other clients.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Coroutine, Dict, Set

from disclink import commands
from disclink.clients.upstream import Identity, UpstreamPort
from disclink.directory.cache import DirectoryCache
from disclink.events import (
    ClientClosed,
    ClientConnected,
    ClientFrame,
    Event,
    UpstreamDisconnected,
    UpstreamMessage,
    UpstreamReady,
    UpstreamResumed,
)
from disclink.hub import frames
from disclink.hub.connection import Connection
from disclink.hub.fanout import FanoutHub
from disclink.hub.heartbeat import Heartbeat
from disclink.inbound.pipeline import EventPipeline
from disclink.memory.refs import ProcessedRefSet
from disclink.memory.store import PersistedState, PersistenceStore
from disclink.model import DirectorySnapshot, SendRequest
from disclink.outbound.queue import SendQueue

logger = logging.getLogger(__name__)


@dataclass
class BridgeState:
    directory: DirectorySnapshot = field(default_factory=DirectorySnapshot)
    processed: ProcessedRefSet = field(default_factory=ProcessedRefSet)
    # Keyed by ref; insertion order is replay order.
    parked: Dict[str, SendRequest] = field(default_factory=dict)
    upstream_connected: bool = False
    identity: Identity | None = None

    def snapshot(self) -> PersistedState:
        return PersistedState(
            ready=self.directory.ready,
            servers=list(self.directory.servers),
            processed_refs=self.processed.to_list(),
            queue=list(self.parked.values()),
        )

    @classmethod
    def from_persisted(cls, persisted: PersistedState) -> "BridgeState":
        parked: Dict[str, SendRequest] = {}
        for request in persisted.queue:
            parked.setdefault(request.ref, request)
        # Only committed snapshots are ever stored in ``servers``, so a
        # non-empty list is ready even if it was saved mid-rebuild.
        ready = persisted.ready or bool(persisted.servers)
        return cls(
            directory=DirectorySnapshot(servers=list(persisted.servers), ready=ready),
            processed=ProcessedRefSet(persisted.processed_refs),
            parked=parked,
        )


class BridgeController:
    def __init__(
        self,
        upstream: UpstreamPort,
        store: PersistenceStore | None = None,
        *,
        state: BridgeState | None = None,
        hub: FanoutHub | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.upstream = upstream
        self.store = store
        if state is None:
            state = BridgeState.from_persisted(store.load()) if store else BridgeState()
        self.state = state
        self.hub = hub or FanoutHub()
        self.directory = DirectoryCache(self.state, upstream, self.hub, self.persist, sleep)
        self.queue = SendQueue(self.state, self.directory, upstream, self.hub, self.persist, sleep)
        self.pipeline = EventPipeline(self.state, self.hub)
        self.heartbeat = Heartbeat(self.hub)

        self._events: asyncio.Queue[Event] = asyncio.Queue()
        self._tasks: Set[asyncio.Task] = set()
        self._loop_task: asyncio.Task | None = None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def persist(self) -> None:
        if self.store is not None:
            self.store.save(self.state)

    def post(self, event: Event) -> None:
        """Queue ``event`` for the dispatch loop. Safe to call from callbacks."""

        self._events.put_nowait(event)

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self.run())
        await self.heartbeat.start()
        logger.info(
            "Controller started (servers=%d, queued=%d, processedRefs=%d)",
            len(self.state.directory.servers),
            len(self.state.parked),
            len(self.state.processed),
        )

    async def stop(self) -> None:
        await self.heartbeat.stop()
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        for connection in self.hub.connections:
            self.hub.remove(connection)
            try:
                await connection.close()
            except Exception as exc:
                logger.debug("Close of %r failed: %s", connection, exc)
        self.persist()
        if self.store is not None:
            self.store.flush()
        logger.info("Controller stopped")

    async def run(self) -> None:
        while True:
            event = await self._events.get()
            try:
                await self.handle(event)
            except Exception:
                logger.exception("Unhandled error while processing %s", type(event).__name__)
            finally:
                self._events.task_done()

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run ``coro`` off the dispatch loop, tracked for :meth:`drain`."""

        return self.track(asyncio.create_task(coro))

    def track(self, task: asyncio.Task) -> asyncio.Task:
        if task not in self._tasks:
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait until queued events and every spawned task have finished."""

        while True:
            if self._loop_task is not None:
                await self._events.join()
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                if self._loop_task is None or self._events.empty():
                    return
                continue
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Operations shared by handlers
    # ------------------------------------------------------------------ #

    def refresh_directory(self, progressive: bool = True) -> asyncio.Task:
        return self.track(self.directory.start_build(progressive))

    def start_replay(self) -> asyncio.Task | None:
        task = self.queue.start_replay()
        return self.track(task) if task is not None else None

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    async def handle(self, event: Event) -> None:
        if isinstance(event, UpstreamMessage):
            await self.pipeline.handle(event.message)
        elif isinstance(event, ClientFrame):
            await self.on_client_frame(event.connection, event.raw)
        elif isinstance(event, ClientConnected):
            await self.on_client_connected(event.connection)
        elif isinstance(event, ClientClosed):
            self.hub.remove(event.connection)
        elif isinstance(event, UpstreamReady):
            await self.on_upstream_ready(event.identity)
        elif isinstance(event, UpstreamResumed):
            await self.on_upstream_resumed()
        elif isinstance(event, UpstreamDisconnected):
            await self.on_upstream_disconnected()
        else:
            logger.warning("Ignoring unknown event %r", event)

    async def on_upstream_ready(self, identity: Identity | None) -> None:
        self.state.upstream_connected = True
        self.state.identity = identity or self.upstream.identity
        who = self.state.identity
        logger.info("Upstream ready as %s", who.username if who else "unknown")

        await self.hub.broadcast(frames.bridge_status(self.state))
        await self.hub.broadcast(
            {
                "type": "discordReady",
                "data": who.to_dict() if who else {"id": None, "username": None},
            }
        )

        if not self.state.directory.servers:
            self.refresh_directory(progressive=True)
        else:
            await self.hub.broadcast(frames.server_list(self.state.directory.servers))

        if self.state.parked:
            self.start_replay()

    async def on_upstream_resumed(self) -> None:
        self.state.upstream_connected = True
        await self.hub.broadcast(frames.bridge_status(self.state))
        if self.state.parked:
            self.start_replay()

    async def on_upstream_disconnected(self) -> None:
        if not self.state.upstream_connected:
            return
        self.state.upstream_connected = False
        await self.hub.broadcast(frames.bridge_status(self.state))

    async def on_client_connected(self, connection: Connection) -> None:
        self.hub.add(connection)
        await self.hub.send_initial_state(connection, self.state)

    async def on_client_frame(self, connection: Connection, raw: str) -> None:
        connection.touch()
        try:
            payload = json.loads(raw)
        except ValueError:
            await self.hub.send(connection, frames.error("bad-json"))
            return

        handler = commands.get_handler(payload.get("type")) if isinstance(payload, dict) else None
        if handler is None:
            await self.hub.send(connection, frames.error("unknown-request", raw=payload))
            return
        try:
            await handler(self, connection, payload)
        except Exception:
            logger.exception("Handler for %r failed", payload.get("type"))
