"""Normalize inbound upstream messages into ``message`` and ``ping`` frames."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List

from disclink.config import relay
from disclink.model import InboundMessage, PingEvent

from .dedupe import ChannelDedupe
from .display import pick_display_text

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from disclink.controller import BridgeState
    from disclink.hub.fanout import FanoutHub

logger = logging.getLogger(__name__)


class EventPipeline:
    """Filter, dedupe and enrich messages before they are fanned out."""

    def __init__(
        self,
        state: "BridgeState",
        hub: "FanoutHub",
        dedupe: ChannelDedupe | None = None,
    ) -> None:
        self._state = state
        self._hub = hub
        self._dedupe = dedupe or ChannelDedupe()

    def _self_id(self) -> str | None:
        identity = self._state.identity
        return identity.id if identity else None

    def drop_reason(self, message: InboundMessage) -> str | None:
        """Return why ``message`` is filtered out, or ``None`` to keep it."""

        if not message.guild_id or not message.channel_id:
            return "direct message"
        if message.webhook_id:
            return "webhook"
        if (
            relay.IGNORE_OTHER_BOTS
            and message.author.bot
            and message.author.id != self._self_id()
        ):
            return "other bot"
        return None

    def process(self, message: InboundMessage) -> List[Dict[str, Any]]:
        """Return the frames to broadcast for ``message`` (possibly none)."""

        reason = self.drop_reason(message)
        if reason is not None:
            logger.debug("Dropping message %s (%s)", message.id, reason)
            return []

        if self._dedupe.seen(message.channel_id, message.id):
            logger.debug("Suppressing duplicate message %s in channel %s", message.id, message.channel_id)
            return []

        display_text = pick_display_text(message)
        self_id = self._self_id()
        message.from_self = bool(self_id) and message.author.id == self_id

        frames: List[Dict[str, Any]] = [
            {"type": "message", "data": message.to_payload(display_text)}
        ]

        if message.mentions_user(self_id):
            ping = PingEvent(
                message_id=message.id,
                sender=message.author,
                content=display_text,
                guild_id=message.guild_id,
                channel_id=message.channel_id,
                timestamp=message.timestamp,
                guild_name=message.guild_name,
                channel_name=message.channel_name,
            )
            frames.append({"type": "ping", "data": ping.to_payload()})
            logger.info(
                "Ping from %s in %s/#%s",
                message.author.username,
                message.guild_name or message.guild_id,
                message.channel_name or message.channel_id,
            )

        return frames

    async def handle(self, message: InboundMessage) -> int:
        """Process ``message`` and broadcast the resulting frames."""

        frames = self.process(message)
        for frame in frames:
            await self._hub.broadcast(frame)
        return len(frames)
