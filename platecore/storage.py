"""
Local key-value store.

A small string-to-string store persisted as one JSON object on disk,
standing in for browser local storage. The in-memory variant is used by
tests and by callers that do not need persistence.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from .errors import StorageError

logger = logging.getLogger(__name__)


class MemoryStore:
    """Non-persistent key-value store."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if key in self._items:
            del self._items[key]
            self._flush()

    def clear(self) -> None:
        self._items.clear()
        self._flush()

    def keys(self) -> List[str]:
        return list(self._items)

    def _flush(self) -> None:
        """Persist current items; nothing to do in memory."""


class LocalStore(MemoryStore):
    """
    Key-value store backed by a JSON file.

    The file is loaded once on construction and rewritten atomically on
    every change. A corrupt file is logged and treated as empty.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._items = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring corrupt store %s: %s", self.path, exc)
            return {}
        except OSError as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc

        if not isinstance(raw, dict):
            logger.warning("Ignoring store %s: top level is not an object", self.path)
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _flush(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".store-", suffix=".json")
        except OSError as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._items, handle, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except OSError as cleanup_exc:
                logger.warning("Could not remove temporary store %s: %s", tmp_name, cleanup_exc)
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc
