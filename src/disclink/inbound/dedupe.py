"""
Per-channel dedupe of re-emitted upstream events.

Only the most recent ``(message_id, seen_at)`` pair is kept per channel. A
repeat of that id inside the window is suppressed; anything older, or any
other id, is accepted and becomes the new reference point. Suppressed repeats
do not refresh ``seen_at``.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Tuple

from disclink.config import relay


class ChannelDedupe:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._last: Dict[str, Tuple[str, float]] = {}

    def seen(self, channel_id: str, message_id: str) -> bool:
        """Return ``True`` if ``message_id`` repeats inside the window."""

        now = self._clock()
        last = self._last.get(channel_id)
        if last is not None and last[0] == message_id and now - last[1] < relay.DEDUPE_WINDOW:
            return True
        self._last[channel_id] = (message_id, now)
        return False

    def __len__(self) -> int:
        return len(self._last)
