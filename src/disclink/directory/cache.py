"""
Guild/channel directory.

The committed snapshot lives on :class:`~disclink.controller.BridgeState` so it
is persisted and greeted to clients from one place. A build pass collects into
a private list and swaps it in only once every guild has been visited, which
is when ``ready`` flips back to ``True``. Lookups read the committed snapshot;
the in-progress list is consulted only if nothing was ever committed.

Builds are single-flight: :meth:`DirectoryCache.start_build` returns the task
already running when there is one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from disclink.clients.upstream import UpstreamPort
from disclink.config import relay
from disclink.errors import DirectoryError
from disclink.hub import frames
from disclink.hub.fanout import FanoutHub
from disclink.model import Channel, DirectorySnapshot, Guild, Target

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from disclink.controller import BridgeState

logger = logging.getLogger(__name__)

_Named = TypeVar("_Named", Guild, Channel)


def _match(items: Sequence[_Named], ref: str) -> Optional[_Named]:
    """Find ``ref`` by id first, then by case-insensitive name."""

    for item in items:
        if item.id == ref:
            return item
    folded = ref.casefold()
    for item in items:
        if item.name.casefold() == folded:
            return item
    return None


class DirectoryCache:
    def __init__(
        self,
        state: "BridgeState",
        upstream: UpstreamPort,
        hub: FanoutHub,
        persist: Callable[[], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._state = state
        self._upstream = upstream
        self._hub = hub
        self._persist = persist or (lambda: None)
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._pending: List[Guild] | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def building(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_build(self, progressive: bool = True) -> asyncio.Task:
        """Start a build pass, or return the one already in flight."""

        if self.building:
            logger.info("Directory build already running; joining it")
            return self._task
        # Cleared before the task runs so a delivery scheduled in between waits.
        self._idle.clear()
        self._task = asyncio.create_task(self._build(progressive))
        return self._task

    async def build(self, progressive: bool = True) -> DirectorySnapshot:
        await self.start_build(progressive)
        return self._state.directory

    async def wait_idle(self) -> None:
        await self._idle.wait()

    async def _build(self, progressive: bool) -> None:
        try:
            await self._run_pass(progressive)
        except Exception:
            logger.exception("Directory build failed; keeping previous snapshot")
            self._state.directory.ready = True
            await self._hub.broadcast(frames.ready(True))
        finally:
            self._pending = None
            self._idle.set()

    async def _run_pass(self, progressive: bool) -> None:
        logger.info("Starting directory build (progressive=%s)", progressive)
        self._state.directory.ready = False
        self._pending = []
        await self._hub.broadcast(frames.ready(False))

        try:
            guilds = await self._upstream.list_guilds()
        except Exception as exc:
            logger.error("Could not list guilds; keeping previous snapshot: %s", exc)
            servers = list(self._state.directory.servers)
        else:
            size = max(1, relay.BUILD_BATCH_SIZE)
            for start in range(0, len(guilds), size):
                batch = guilds[start:start + size]
                for guild in await asyncio.gather(*(self._fetch_guild(g) for g in batch)):
                    self._pending.append(guild)
                    if progressive:
                        await self._hub.broadcast(frames.server_partial(guild))
                if start + size < len(guilds):
                    await self._sleep(relay.BUILD_BATCH_PAUSE)
            servers = self._pending

        self._state.directory = DirectorySnapshot(servers=list(servers), ready=True)
        logger.info("Directory build complete; servers=%d", len(servers))
        await self._hub.broadcast(frames.ready(True))
        await self._hub.broadcast(frames.server_list(self._state.directory.servers))
        self._persist()

    async def _fetch_guild(self, guild: Guild) -> Guild:
        try:
            channels = await self._upstream.fetch_channels(guild.id)
        except Exception as exc:
            logger.warning("%s", DirectoryError(guild.id, exc))
            channels = []
        cached = Guild(guild.id, guild.name, list(channels)).sendable_only()
        logger.debug("Cached %s text-channels=%d", guild.name, len(cached.channels))
        return cached

    def _servers(self) -> List[Guild]:
        if self._state.directory.servers or self._pending is None:
            return self._state.directory.servers
        return self._pending

    def resolve(self, guild_ref: str | None, channel_ref: str | None) -> Optional[Tuple[Guild, Channel]]:
        """Look up a sendable channel. Returns ``None`` when nothing matches.

        Without ``guild_ref`` the channel must be given by id; names are only
        unique within a guild.
        """

        if not channel_ref:
            return None
        servers = self._servers()
        if guild_ref:
            guild = _match(servers, guild_ref)
            if guild is None:
                return None
            channel = _match(guild.channels, channel_ref)
            return (guild, channel) if channel is not None else None
        for guild in servers:
            for channel in guild.channels:
                if channel.id == channel_ref:
                    return guild, channel
        return None

    def resolve_target(self, target: Target) -> Optional[Tuple[Guild, Channel]]:
        return self.resolve(
            target.guild_id or target.guild_name,
            target.channel_id or target.channel_name,
        )
