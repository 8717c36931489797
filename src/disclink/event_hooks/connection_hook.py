"""
Gateway connectivity transitions.

discord.py fires ``on_disconnect`` whenever the gateway socket drops and
``on_resumed`` when a session resumes without a fresh READY. Both are mapped
onto controller events so the send queue can park or replay.
"""

from __future__ import annotations

import logging

import discord

from disclink.events import UpstreamDisconnected, UpstreamResumed

logger = logging.getLogger(__name__)


async def handle_disconnect(client: discord.Client) -> None:
    logger.warning("Gateway connection lost")
    client.sink(UpstreamDisconnected())


async def handle_resumed(client: discord.Client) -> None:
    logger.info("Gateway session resumed")
    client.sink(UpstreamResumed())
