"""Key-value storage media for persisting the session.

Every backend raises StorageUnavailableError when the medium cannot be
used; SessionStore turns that into an in-memory fallback.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

import redis

from clients.valkey_client import ValkeyClient

logger = logging.getLogger(__name__)


class StorageUnavailableError(Exception):
    """The storage medium cannot be read or written right now."""


class KeyValueStorage(Protocol):
    """Synchronous string key-value storage."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage. Always available, lost on exit."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class UnavailableStorage:
    """Explicit 'no persistent storage' medium. Every call reports unavailability."""

    def get_item(self, key: str) -> str | None:
        raise StorageUnavailableError("No persistent storage configured")

    def set_item(self, key: str, value: str) -> None:
        raise StorageUnavailableError("No persistent storage configured")

    def remove_item(self, key: str) -> None:
        raise StorageUnavailableError("No persistent storage configured")


class FileStorage:
    """
    JSON file holding a flat string map.

    The local-disk analogue of browser local storage: survives restarts,
    shared by every client process pointed at the same path.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read {self.path}: {e}") from e

        try:
            items = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError:
            logger.warning(f"Storage file {self.path} is corrupt; treating as empty")
            return {}
        return items if isinstance(items, dict) else {}

    def _write_all(self, items: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(items), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot write {self.path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if key in items:
            del items[key]
            self._write_all(items)


class ValkeyStorage:
    """Storage backed by a shared Valkey instance."""

    def __init__(self, valkey: ValkeyClient):
        self._valkey = valkey

    def get_item(self, key: str) -> str | None:
        try:
            return self._valkey.get(key)
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Valkey read failed: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        try:
            self._valkey.set(key, value)
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Valkey write failed: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._valkey.delete(key)
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Valkey delete failed: {e}") from e
