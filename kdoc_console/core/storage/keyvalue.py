"""Durable key-value backends for client-only state.

All backends store plain strings; callers handle JSON encoding. Writes are
synchronous so that state is flushed before the mutating call returns.
"""

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

import redis

from kdoc_console.core.config import Settings

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Namespaced string store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def set_many(self, values: Mapping[str, str]) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store (tests and the ``memory`` backend)."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def set_many(self, values: Mapping[str, str]) -> None:
        self._data.update(values)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class JsonFileKeyValueStore:
    """Single JSON object on disk, rewritten atomically on every change.

    A missing or unreadable file is treated as empty.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(
                "Local state file unreadable, starting empty",
                extra={"structured": {"path": str(self._path), "error": type(e).__name__}},
            )
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._write()

    def set_many(self, values: Mapping[str, str]) -> None:
        self._data.update(values)
        self._write()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._write()


class RedisKeyValueStore:
    """Redis-backed store; ``set_many`` uses a single MSET."""

    def __init__(self, redis_client: redis.Redis) -> None:
        self._redis = redis_client

    def get(self, key: str) -> str | None:
        value = self._redis.get(key)
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    def set(self, key: str, value: str) -> None:
        self._redis.set(key, value)

    def set_many(self, values: Mapping[str, str]) -> None:
        if values:
            self._redis.mset(dict(values))

    def delete(self, key: str) -> None:
        self._redis.delete(key)


def build_key_value_store(settings: Settings) -> KeyValueStore:
    """Create the backend selected by ``settings.storage_backend``.

    Raises:
        ValueError: redis backend selected without ``redis_url``
    """
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStore()
    if settings.storage_backend == "redis":
        if not settings.redis_url:
            raise ValueError("storage_backend=redis requires KDOC_REDIS_URL")
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        return RedisKeyValueStore(client)
    return JsonFileKeyValueStore(settings.storage_path)
