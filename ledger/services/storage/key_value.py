"""
Key-Value Store Implementations

Two backends behind KeyValueStoreInterface:
- InMemoryKeyValueStore: a dict; used by tests and when nothing should
  touch disk.
- JsonFileKeyValueStore: one "<key>.json" file per key under a data
  directory, the on-disk stand-in for browser local storage.

File writes go to a temporary file first and are then renamed over the
target, so a reader never sees half a collection.
"""

import os
import re
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledger.services.storage.interface import KeyValueStoreInterface, StorageError


logger = structlog.get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.@-]+$")


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dictionary-backed key-value store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.write_count += 1

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    File-backed key-value store.

    Each key maps to "<data_dir>/<key>.json". The directory is created
    on first write.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            self._write(path, value)
        except OSError as e:
            logger.error("kv_write_failed", path=str(path), error=str(e))
            raise StorageError(f"Failed to write {path}: {e}")

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}")
