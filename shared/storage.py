"""
Persistent key-value storage.
Values are strings; the file backend keeps every key in one JSON object.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from shared.errors import PersistenceWriteFailure

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Interface consumed by the favorites store."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Process-local store, used when nothing needs to survive a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value


class JsonFileStore(KeyValueStore):
    """
    Stores all keys in a single JSON object on disk.
    Writes go to a temporary file that replaces the original, so a crash
    mid-write never leaves a truncated file behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"Stored value for {key!r} is not a string")
        return value

    def set(self, key: str, value: str) -> None:
        with self._lock:
            try:
                try:
                    data = self._read_all()
                except ValueError as e:
                    logger.warning(f"Overwriting unreadable storage file {self.path}: {e}")
                    data = {}
                data[key] = value
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".json")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(data, f, indent=2)
                    os.replace(tmp_path, self.path)
                except BaseException:
                    Path(tmp_path).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise PersistenceWriteFailure(f"Could not write {key!r} to {self.path}: {e}") from e
