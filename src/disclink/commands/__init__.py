"""
Auto-discovery & registry for client request handlers.

Any module inside ``commands/handlers`` that defines::

    from disclink.commands import register_command

    @register_command("someType", "someAlias")
    async def handle(controller, connection, payload): ...

is picked up automatically at import-time. The controller looks handlers up by
the ``type`` field of each client frame through :func:`get_handler`.

Handlers run on the dispatch loop, so anything that waits on the upstream is
handed to ``controller.spawn`` instead of being awaited inline.
"""

from __future__ import annotations

import logging
from importlib import import_module
from pathlib import Path
from pkgutil import iter_modules
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from disclink.controller import BridgeController
    from disclink.hub.connection import Connection

logger = logging.getLogger(__name__)

Handler = Callable[["BridgeController", "Connection", Dict[str, Any]], Awaitable[None]]

_HANDLERS: Dict[str, Handler] = {}


def register_command(*names: str):
    """Decorator registering a handler under one or more request types."""

    if not names:
        raise TypeError("register_command expects at least one request type")

    def _register(fn: Handler) -> Handler:
        for name in names:
            if name in _HANDLERS and _HANDLERS[name] is not fn:
                raise ValueError(f"duplicate handler for request type {name!r}")
            _HANDLERS[name] = fn
        return fn

    return _register


def get_handler(name: Any) -> Optional[Handler]:
    if not isinstance(name, str):
        return None
    return _HANDLERS.get(name)


def registered() -> List[str]:
    return sorted(_HANDLERS)


_pkg_path = Path(__file__).resolve().parent / "handlers"
for _, modname, _ in iter_modules([str(_pkg_path)]):
    if modname.startswith("_"):
        continue
    import_module(f"{__name__}.handlers.{modname}")

logger.debug("Registered %d request type(s)", len(_HANDLERS))


__all__ = [
    "Handler",
    "get_handler",
    "register_command",
    "registered",
]
