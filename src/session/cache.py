"""Key-value session caches for opaque JSON values."""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional, Protocol


class SessionCacheLike(Protocol):
    """Synchronous get/set cache; both calls may raise on I/O failure."""
    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class MemorySessionCache:
    """Process-local cache holding deep copies of stored values."""

    def __init__(self):
        self._values: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._values.get(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if value is None:
                self._values.pop(key, None)
            else:
                self._values[key] = copy.deepcopy(value)


class JsonFileSessionCache:
    """Cache persisted as one JSON object on disk so state survives restarts.

    Writes go to a temporary file in the same directory followed by an atomic
    replace, so a crash mid-write leaves the previous document intact.
    """

    def __init__(self, path: str | Path, logger: Optional[logging.Logger] = None):
        self._path = Path(path).expanduser()
        self._logger = logger or logging.getLogger("session.cache")
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Any:
        with self._lock:
            return self._read_locked().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            try:
                document = self._read_locked()
            except ValueError as error:
                # json.JSONDecodeError is a ValueError too.
                self._logger.warning(
                    "Session cache %s is unreadable, replacing it: %s",
                    self._path,
                    error,
                )
                document = {}
            if value is None:
                if key not in document:
                    return
                document.pop(key)
            else:
                document[key] = value
            self._write_locked(document)

    def _read_locked(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        with open(self._path, "r", encoding="utf-8") as fh:
            document = json.load(fh)
        if not isinstance(document, dict):
            raise ValueError(f"Session cache root must be an object: {self._path}")
        return document

    def _write_locked(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as fh:
                json.dump(document, fh, separators=(",", ":"))
            temp_path.replace(self._path)
        except OSError:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    self._logger.debug(
                        "Failed to remove temp cache file %s: %s",
                        temp_path,
                        cleanup_error,
                    )
            raise
