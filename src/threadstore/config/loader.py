from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict

DEFAULT_CONFIG_PATH = Path("config.toml")
CONFIG_PATH_ENV = "THREADSTORE_CONFIG"
ROOT_TABLE = "threadstore"


def load_settings(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Return the ``[threadstore]`` table of the TOML config file.

    The file is ``path``, else ``$THREADSTORE_CONFIG``, else ``config.toml``.
    Sub-tables (``[threadstore.discord]``, ``[threadstore.cache]``,
    ``[threadstore.documents]``) override the matching environment variables.
    A missing file or table yields ``{}``.
    """
    target = Path(path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    if not target.is_file():
        return {}

    with target.open("rb") as handle:
        raw = tomllib.load(handle)

    settings = raw.get(ROOT_TABLE, {})
    if not isinstance(settings, dict):
        raise ValueError(f"[{ROOT_TABLE}] in {target} must be a table")
    return settings


def section(settings: Dict[str, Any] | None, name: str) -> Dict[str, Any]:
    """Return ``[threadstore.<name>]`` or an empty table."""

    return (settings or {}).get(name, {})


__all__ = ["load_settings", "section", "DEFAULT_CONFIG_PATH", "CONFIG_PATH_ENV"]
