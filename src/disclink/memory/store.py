"""
Coalescing, crash-safe persistence of the bridge state.

``PersistenceStore`` mirrors ``{ready, servers, processedRefs, queue}`` to one
JSON file. :meth:`PersistenceStore.save` only marks the state dirty and
(re)arms a quiet-period timer; the write happens once the state has been quiet
for ``SAVE_DEBOUNCE`` seconds. Used as an async context manager the store
guarantees a final flush on exit.

Failures never propagate: a bad or missing file loads as defaults, and a
failed write is logged while the in-memory state keeps running.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Protocol

from disclink.config import relay
from disclink.errors import PersistenceError
from disclink.model import Guild, SendRequest

from . import state_file

logger = logging.getLogger(__name__)


@dataclass
class PersistedState:
    ready: bool = False
    servers: List[Guild] = field(default_factory=list)
    processed_refs: List[str] = field(default_factory=list)
    queue: List[SendRequest] = field(default_factory=list)

    def snapshot(self) -> "PersistedState":
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ready": self.ready,
            "servers": [g.to_dict() for g in self.servers],
            "processedRefs": list(self.processed_refs),
            "queue": [r.to_dict() for r in self.queue],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PersistedState":
        servers = raw.get("servers")
        refs = raw.get("processedRefs")
        queue = raw.get("queue")
        return cls(
            # ``cacheReady`` is the key used by older state files.
            ready=bool(raw.get("ready", raw.get("cacheReady", False))),
            servers=[Guild.from_dict(g) for g in servers if isinstance(g, dict)] if isinstance(servers, list) else [],
            processed_refs=[str(r) for r in refs] if isinstance(refs, list) else [],
            queue=[SendRequest.from_dict(q) for q in queue if isinstance(q, dict)] if isinstance(queue, list) else [],
        )


class _StateSource(Protocol):
    def snapshot(self) -> PersistedState: ...


class PersistenceStore:
    """Debounced writer for the bridge state file."""

    def __init__(self, path: Path | str, quiet_period: float | None = None) -> None:
        self.path = Path(path)
        self._quiet_period = quiet_period
        self._source: _StateSource | None = None
        self._timer: asyncio.TimerHandle | None = None
        self.writes = 0

    @property
    def quiet_period(self) -> float:
        return self._quiet_period if self._quiet_period is not None else relay.SAVE_DEBOUNCE

    @property
    def dirty(self) -> bool:
        return self._source is not None

    def load(self) -> PersistedState:
        """Read the state file, returning defaults when absent or unreadable."""

        if not state_file.exists(self.path):
            logger.info("No state file at %s; starting empty", self.path)
            return PersistedState()
        try:
            state = PersistedState.from_dict(state_file.read(self.path))
        except PersistenceError as exc:
            logger.warning("Ignoring unreadable state file: %s", exc)
            return PersistedState()
        except (TypeError, ValueError, AttributeError, OverflowError) as exc:
            logger.warning("Ignoring malformed state file %s: %s", self.path, exc)
            return PersistedState()
        logger.info(
            "Loaded state from %s (servers=%d, processedRefs=%d, queued=%d)",
            self.path,
            len(state.servers),
            len(state.processed_refs),
            len(state.queue),
        )
        return state

    def save(self, state: _StateSource) -> None:
        """Schedule a write of ``state`` after the quiet period."""

        self._source = state
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside an event loop there is nothing to coalesce with.
            self.flush()
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.quiet_period, self.flush)

    def flush(self) -> bool:
        """Write any pending state now. Returns ``True`` if a write succeeded."""

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        source, self._source = self._source, None
        if source is None:
            return False
        try:
            state_file.write(self.path, source.snapshot().to_dict())
        except PersistenceError as exc:
            logger.error("Failed to save state: %s", exc)
            # Keep the state pending so the next save or flush retries it.
            self._source = source
            return False
        self.writes += 1
        logger.debug("Saved state to %s", self.path)
        return True

    async def __aenter__(self) -> "PersistenceStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.flush()
