"""
Durable bridge state.

``state_file``
    Atomic JSON read/write of the state file.
``refs``
    :class:`~disclink.memory.refs.ProcessedRefSet`, the capped record of
    delivered refs.
``store``
    :class:`~disclink.memory.store.PersistenceStore`, the debounced writer,
    and :class:`~disclink.memory.store.PersistedState`, its payload.
"""

from .refs import ProcessedRefSet
from .store import PersistedState, PersistenceStore

__all__ = ["PersistedState", "PersistenceStore", "ProcessedRefSet"]
