"""Key/value string storage behind the client's local mirror.

Browser-style ``localStorage`` semantics: string keys, string values,
``get_item`` returns None for a missing key.  Two implementations:

  InMemoryStorage  process-lifetime dict, for tests and throwaway sessions.
  JsonFileStorage  one JSON object on disk, rewritten atomically per change.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Protocol

logger = logging.getLogger(__name__)


class LocalStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)


class JsonFileStorage:
    """All keys in one JSON object file.

    Every write replaces the file through a temporary sibling, so a crash
    mid-write leaves the previous contents intact.  OSError from the
    filesystem propagates to the caller.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._items = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except json.JSONDecodeError:
            logger.warning("Storage file %s is not valid JSON, starting empty", self._path)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Storage file %s does not hold an object, starting empty", self._path)
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            "w", delete=False, dir=str(self._path.parent), encoding="utf-8"
        ) as tmp:
            json.dump(self._items, tmp, ensure_ascii=False, indent=2)
            tmp.flush()
            temp_path = Path(tmp.name)
        temp_path.replace(self._path)

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._flush()
