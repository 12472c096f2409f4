"""Client-local settings persisted as one JSON file.

Holds the per-user grid preferences (working weekends, column widths,
column order). The file is read once on construction and rewritten on
every change.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _json_dump(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
    tmp.replace(path)


def _json_load(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


class JsonSettingsStore:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict[str, Any] = {}
        if self.path.exists():
            try:
                loaded = _json_load(self.path)
            except (OSError, json.JSONDecodeError):
                logger.exception("could not read settings file %s, starting empty", self.path)
                loaded = {}
            if isinstance(loaded, dict):
                self._data = loaded

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        _json_dump(self.path, self._data)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)
