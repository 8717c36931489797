"""
``getMessages``: on-demand fetch of recent channel history.

The reply goes only to the requesting client::

    {"type": "messages", "ref": r, "data": [{id, author, content, timestamp}, ...]}
    {"type": "messages", "ref": r, "error": "not found"}

Entries are newest first. ``limit`` defaults to ``HISTORY_DEFAULT`` and is
clamped to ``HISTORY_MAX``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from disclink.commands import register_command
from disclink.config import relay
from disclink.errors import ResolutionError, TransportError
from disclink.model import Target

logger = logging.getLogger(__name__)


def clamp_limit(raw: Any) -> int:
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        limit = relay.HISTORY_DEFAULT
    if limit <= 0:
        limit = relay.HISTORY_DEFAULT
    return min(limit, relay.HISTORY_MAX)


async def fetch_messages(controller, connection, payload: Dict[str, Any]) -> None:
    frame: Dict[str, Any] = {"type": "messages", "ref": payload.get("ref")}
    target = Target.from_payload(payload)

    if not controller.state.upstream_connected:
        frame["error"] = "not-connected"
        await controller.hub.send(connection, frame)
        return

    await controller.directory.wait_idle()
    resolved = controller.directory.resolve_target(target)
    # History may be requested for channels the directory filtered out.
    channel_id = resolved[1].id if resolved else target.channel_id
    if not channel_id:
        frame["error"] = "not found"
        await controller.hub.send(connection, frame)
        return

    limit = clamp_limit(payload.get("limit"))
    try:
        frame["data"] = await controller.upstream.fetch_history(channel_id, limit)
    except ResolutionError as exc:
        frame["error"] = str(exc)
    except TransportError as exc:
        logger.warning("History fetch for %s failed: %s", channel_id, exc)
        frame["error"] = str(exc) or "fetch failed"
    await controller.hub.send(connection, frame)


@register_command("getMessages")
async def get_messages(controller, connection, payload):
    controller.spawn(fetch_messages(controller, connection, payload))
