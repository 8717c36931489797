"""Locate and parse the optional TOML config file."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict

DEFAULT_CONFIG_PATH = Path("config.toml")
CONFIG_PATH_ENV = "DISCLINK_CONFIG"


def config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


def load_raw_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Parse the config file named by ``path``, ``$DISCLINK_CONFIG`` or
    ``config.toml``, in that order.

    A missing file yields ``{}`` so every setting falls back to the
    environment. A malformed file is a startup error.
    """
    target = config_path(path)
    if not target.is_file():
        return {}

    try:
        with target.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid config file {target}: {exc}") from exc


__all__ = ["CONFIG_PATH_ENV", "DEFAULT_CONFIG_PATH", "config_path", "load_raw_config"]
