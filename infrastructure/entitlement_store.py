"""JSON-file persistence for boolean entitlement flags."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger


class JsonEntitlementStore:
    """Boolean key/value store kept in a small JSON document.

    Writes replace the file atomically so a crash never leaves half a file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> bool:
        return bool(self._data.get(key, False))

    def set(self, key: str, value: bool) -> None:
        self._data[key] = bool(value)
        self._write()

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as ex:
            logger.warning("Entitlement store unreadable, starting empty: {} ({})", self._path, ex)
            return {}
        if not isinstance(data, dict):
            logger.warning("Entitlement store is not a JSON object: {}", self._path)
            return {}
        return data

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, sort_keys=True)
        os.replace(tmp, self._path)
