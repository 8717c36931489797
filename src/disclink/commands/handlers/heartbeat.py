"""Liveness requests. Every frame already refreshes ``last_seen_at``."""

import time

from disclink.commands import register_command


@register_command("ping")
async def ping(controller, connection, payload):
    await controller.hub.send(connection, {"type": "pong", "ts": int(time.time() * 1000)})


@register_command("hb_ack")
async def hb_ack(controller, connection, payload):
    return None
