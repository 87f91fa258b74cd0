"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access."""

    def __init__(self, settings_path: str | Path) -> None:
        self._path = Path(settings_path)
        if not self._path.exists():
            raise FileNotFoundError(f"settings.json not found: {self._path}")
        with self._path.open("r", encoding="utf-8") as f:
            self._data = json.load(f)

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def get_int(self, key: str, default: int) -> int:
        """Return `key` as int, falling back to `default` when missing or invalid."""
        try:
            return int(self.get(key, default))
        except (ValueError, TypeError):
            return default

    def get_float(self, key: str, default: float) -> float:
        """Return `key` as float, falling back to `default` when missing or invalid."""
        try:
            return float(self.get(key, default))
        except (ValueError, TypeError):
            return default

    def get_path(self, key: str, default: str | Path | None = None) -> Path | None:
        """Return `key` as a Path with `~` and environment variables expanded."""
        raw = self.get(key, default)
        if not raw:
            return None
        return Path(os.path.expanduser(os.path.expandvars(str(raw))))
