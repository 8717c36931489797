"""``setPresence``: change the upstream account's activity line."""

from __future__ import annotations

import logging

from disclink.commands import register_command
from disclink.errors import TransportError
from disclink.model import Ack

logger = logging.getLogger(__name__)

PRESENCE_KINDS = ("Playing", "Listening", "Watching", "Competing")


async def apply_presence(controller, connection, payload) -> None:
    ref = payload.get("ref")
    text = str(payload.get("text") or "").strip()
    kind = payload.get("kind") if payload.get("kind") in PRESENCE_KINDS else PRESENCE_KINDS[0]

    if not text:
        ack = Ack(ref, ok=False, error="missing text")
    elif not controller.state.upstream_connected:
        ack = Ack(ref, ok=False, error="not-connected")
    else:
        try:
            await controller.upstream.set_presence(text, kind)
        except TransportError as exc:
            logger.warning("setPresence failed: %s", exc)
            ack = Ack(ref, ok=False, error=str(exc) or "presence failed")
        else:
            logger.info("Presence set to %s %r", kind, text)
            ack = Ack(ref, ok=True)
    await controller.hub.send(connection, ack.to_message())


@register_command("setPresence")
async def set_presence(controller, connection, payload):
    controller.spawn(apply_presence(controller, connection, payload))
