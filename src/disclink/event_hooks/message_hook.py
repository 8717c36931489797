import logging

import discord

from disclink.clients import adapter
from disclink.events import UpstreamMessage

logger = logging.getLogger(__name__)


async def handle(client: discord.Client, message: discord.Message):
    """Normalize an incoming Discord message and hand it to the controller."""

    self_id = str(client.user.id) if client.user else None
    try:
        inbound = adapter.to_inbound(message, self_id)
    except Exception:
        logger.exception("Failed to normalize message %s", getattr(message, "id", "unknown"))
        return

    logger.debug(
        "Message %s received in channel %s (guild %s)",
        inbound.id,
        inbound.channel_id,
        inbound.guild_id,
    )
    client.sink(UpstreamMessage(inbound))
