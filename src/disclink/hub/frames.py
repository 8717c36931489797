"""Constructors for server-to-client frames shared by several components."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable

from disclink.model import Guild

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from disclink.controller import BridgeState


def bridge_status(state: "BridgeState") -> Dict[str, Any]:
    return {
        "type": "bridgeStatus",
        "bridgeConnected": True,
        "discordReady": state.upstream_connected,
    }


def ready(value: bool) -> Dict[str, Any]:
    return {"type": "ready", "value": bool(value)}


def server_partial(guild: Guild) -> Dict[str, Any]:
    return {"type": "serverPartial", "guild": guild.to_dict()}


def server_list(servers: Iterable[Guild]) -> Dict[str, Any]:
    return {"type": "serverList", "servers": [g.to_dict() for g in servers]}


def error(reason: str, raw: Any = None) -> Dict[str, Any]:
    frame: Dict[str, Any] = {"type": "error", "error": reason}
    if raw is not None:
        frame["raw"] = raw
    return frame


HEARTBEAT = {"type": "hb"}
