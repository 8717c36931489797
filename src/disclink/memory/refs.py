"""
Processed-ref bookkeeping.

:class:`ProcessedRefSet` remembers refs of sends that reached the upstream.
Membership is what makes resubmissions skip. Retention is a size cap: once
``limit`` refs are stored the oldest insertions are evicted first, so the
at-most-once guarantee covers the most recent ``limit`` deliveries.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List

from disclink.config import relay


class ProcessedRefSet:
    def __init__(self, refs: Iterable[str] = (), limit: int | None = None) -> None:
        self._limit = limit if limit is not None else relay.PROCESSED_REFS_LIMIT
        # dict preserves insertion order, which doubles as eviction order.
        self._refs: Dict[str, None] = {}
        for ref in refs:
            self.add(ref)

    def add(self, ref: str) -> bool:
        """Record ``ref``; return ``False`` if it was already present."""

        if ref in self._refs:
            return False
        self._refs[ref] = None
        if self._limit > 0:
            while len(self._refs) > self._limit:
                del self._refs[next(iter(self._refs))]
        return True

    def __contains__(self, ref: object) -> bool:
        return ref in self._refs

    def __len__(self) -> int:
        return len(self._refs)

    def __iter__(self) -> Iterator[str]:
        return iter(self._refs)

    def to_list(self) -> List[str]:
        return list(self._refs)
