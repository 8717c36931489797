"""Discord client bootstrap and the production upstream port."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List

import discord

from disclink.clients import adapter
from disclink.clients.upstream import Identity
from disclink.config import core
from disclink.errors import AuthError, ResolutionError, TransportError
from disclink.event_hooks import connection_hook, message_hook, ready_hook
from disclink.events import Event
from disclink.model import Channel, Guild

logger = logging.getLogger(__name__)

# --- Intents --------------------------------------------------------------- #
intents = discord.Intents.none()
intents.guilds = True
intents.guild_messages = True
intents.message_content = True

_ACTIVITY_TYPES = {
    "Playing": discord.ActivityType.playing,
    "Listening": discord.ActivityType.listening,
    "Watching": discord.ActivityType.watching,
    "Competing": discord.ActivityType.competing,
}


def _drop_event(event: Event) -> None:
    logger.debug("No controller bound; dropping %s", type(event).__name__)


class BridgeBot(discord.Client):
    """Gateway client whose callbacks only post events to the controller."""

    def __init__(self) -> None:
        super().__init__(intents=intents)
        self.sink: Callable[[Event], None] = _drop_event

    async def on_ready(self) -> None:
        await ready_hook.handle(self)

    async def on_message(self, message: discord.Message) -> None:
        await message_hook.handle(self, message)

    async def on_disconnect(self) -> None:
        await connection_hook.handle_disconnect(self)

    async def on_resumed(self) -> None:
        await connection_hook.handle_resumed(self)


class DiscordUpstream:
    """:class:`~disclink.clients.upstream.UpstreamPort` backed by discord.py."""

    def __init__(self, client: BridgeBot | None = None) -> None:
        self.client = client or BridgeBot()

    def bind(self, sink: Callable[[Event], None]) -> None:
        self.client.sink = sink

    @property
    def identity(self) -> Identity | None:
        user = self.client.user
        if user is None:
            return None
        return Identity(id=str(user.id), username=user.name)

    async def start(self, token: str) -> None:
        """Log in and run the gateway until the client is closed."""

        try:
            await self.client.login(token)
        except discord.LoginFailure as exc:
            raise AuthError(str(exc)) from exc
        await self.client.connect()

    async def close(self) -> None:
        if not self.client.is_closed():
            await self.client.close()

    async def list_guilds(self) -> List[Guild]:
        guilds = list(self.client.guilds)
        if not guilds:
            # Gateway cache can be empty right after login; fall back to the paginated REST listing.
            logger.info("Guild cache empty; fetching guilds over REST")
            guilds = [g async for g in self.client.fetch_guilds(limit=None)]
        return [Guild(id=str(g.id), name=g.name) for g in guilds]

    async def fetch_channels(self, guild_id: str) -> List[Channel]:
        guild = self.client.get_guild(int(guild_id))
        if guild is None:
            guild = await self.client.fetch_guild(int(guild_id))
        channels = list(await guild.fetch_channels())
        # Active threads are only known from the gateway cache.
        channels.extend(getattr(guild, "threads", []) or [])
        return [adapter.to_channel(c) for c in channels]

    async def _get_channel(self, channel_id: str) -> Any:
        try:
            cid = int(channel_id)
        except (TypeError, ValueError) as exc:
            raise ResolutionError() from exc
        channel = self.client.get_channel(cid)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(cid)
            except discord.NotFound as exc:
                raise ResolutionError() from exc
            except discord.DiscordException as exc:
                raise TransportError(str(exc)) from exc
        return channel

    async def send(self, channel_id: str, content: str) -> None:
        channel = await self._get_channel(channel_id)
        if not hasattr(channel, "send"):
            raise ResolutionError("channel not sendable")
        try:
            await channel.send(content)
        except discord.DiscordException as exc:
            raise TransportError(str(exc)) from exc

    async def fetch_history(self, channel_id: str, limit: int) -> List[Dict[str, Any]]:
        channel = await self._get_channel(channel_id)
        if not hasattr(channel, "history"):
            raise ResolutionError("channel has no history")
        try:
            # discord.py pages the request in batches of 100, newest first.
            return [adapter.to_history_entry(m) async for m in channel.history(limit=limit)]
        except discord.DiscordException as exc:
            raise TransportError(str(exc)) from exc

    async def set_presence(self, text: str, kind: str) -> None:
        activity = discord.Activity(
            type=_ACTIVITY_TYPES.get(kind, discord.ActivityType.playing),
            name=text,
        )
        try:
            await self.client.change_presence(activity=activity, status=discord.Status.online)
        except discord.DiscordException as exc:
            raise TransportError(str(exc)) from exc


async def serve() -> None:
    """Run the WebSocket hub and the Discord gateway until one of them stops."""

    # Imported here: the controller pulls in the whole component graph.
    from disclink.controller import BridgeController
    from disclink.hub import server
    from disclink.memory.store import PersistenceStore

    upstream = DiscordUpstream()
    async with PersistenceStore(Path(core.STATE_FILE)) as store:
        controller = BridgeController(upstream, store)
        upstream.bind(controller.post)
        await controller.start()
        runner = await server.start(controller, core.HOST, core.PORT)
        try:
            await upstream.start(core.DISCORD_TOKEN)
        finally:
            await upstream.close()
            await runner.cleanup()
            await controller.stop()


def run() -> None:
    """Start the bridge using configuration from the environment."""

    try:
        core.validate()
    except ValueError as exc:
        logger.error("%s. Cannot run client.", exc)
        raise SystemExit(1) from exc

    try:
        asyncio.run(serve())
    except AuthError as exc:
        logger.error("Login failed: %s", exc)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
