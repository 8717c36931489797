"""
Low-level helpers for the persisted state file.

The file is a single JSON document::

    {"ready": bool, "servers": [Guild, ...], "processedRefs": [str, ...],
     "queue": [SendRequest, ...]}

:func:`read` returns the decoded mapping and :func:`write` replaces the file
atomically (temporary file in the same directory, then ``os.replace``), so a
crash mid-write leaves the previously committed file intact. Both raise
:class:`~disclink.errors.PersistenceError`; callers decide whether to log.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from disclink.errors import PersistenceError


def exists(path: Path) -> bool:
    return path.is_file()


def read(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as exc:
        raise PersistenceError(f"failed to read {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise PersistenceError(f"unexpected top-level {type(raw).__name__} in {path}")
    return raw


def write(path: Path, payload: Dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(payload, ensure_ascii=False, indent=2)
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=path.name, suffix=".tmp")
    except (OSError, TypeError, ValueError) as exc:
        raise PersistenceError(f"failed to prepare {path}: {exc}") from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        # Atomic rename keeps a partially written file from replacing the committed one.
        os.replace(tmp_path, path)
    except OSError as exc:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise PersistenceError(f"failed to write {path}: {exc}") from exc
