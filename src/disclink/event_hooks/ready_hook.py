import logging

import discord

from disclink.clients.upstream import Identity
from disclink.events import UpstreamReady

logger = logging.getLogger(__name__)


async def handle(client: discord.Client):
    """Announce the authenticated identity to the controller."""
    user = client.user
    if user is None:
        logger.warning("Ready event without a user; identity unknown")
        client.sink(UpstreamReady(identity=None))
        return

    logger.info(f"Logged in as {user.name} (ID: {user.id})")
    logger.info("Gateway reports %d guild(s)", len(client.guilds))
    client.sink(UpstreamReady(identity=Identity(id=str(user.id), username=user.name)))
