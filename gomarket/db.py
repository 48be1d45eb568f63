"""
Storage Module - Key-Value Backends for the Cart Snapshot

Provides:
- MemoryStorage: process-local dict (tests, ephemeral sessions)
- FileStorage: one file per key on local disk (device storage)
- RedisStorage: Upstash Redis over REST

All backends implement the same two-call contract: get(key) -> str | None
and set(key, value). Failures surface as StorageError; a stored value that
is not valid UTF-8 surfaces as SnapshotDecodeError.
"""

import asyncio
import os
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable
from urllib.parse import quote

from gomarket import config
from gomarket.errors import (
    ERROR_INVALID_SNAPSHOT,
    ERROR_STORAGE_UNAVAILABLE,
    SnapshotDecodeError,
    StorageError,
)
from gomarket.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class KeyValueStorage(Protocol):
    """Minimal async key-value contract consumed by the cart store."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class StorageKeys:
    """Key names for cart data."""

    PRODUCTS = "products"

    @staticmethod
    def products_key(namespace: str | None = None) -> str:
        return f"{namespace or config.CART_STORAGE_NAMESPACE}:{StorageKeys.PRODUCTS}"


class MemoryStorage:
    """In-process storage backed by a dict."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileStorage:
    """
    Stores each key as a file under a directory.

    Writes go to a temporary file first and are moved into place, so a
    crash mid-write never leaves a truncated snapshot behind.
    """

    def __init__(self, directory: str | os.PathLike | None = None) -> None:
        self.directory = Path(directory or config.CART_STORAGE_DIR)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except UnicodeDecodeError as e:
            raise SnapshotDecodeError(f"{ERROR_INVALID_SNAPSHOT}: {e}", key) from e
        except OSError as e:
            raise StorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", key) from e

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except OSError as e:
            raise StorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", key) from e


class RedisStorage:
    """Upstash Redis storage (async REST client)."""

    def __init__(self, client=None) -> None:
        self._client = client  # Lazy initialization

    @property
    def client(self):
        """Get Redis client (lazy initialization)."""
        if self._client is None:
            self._client = get_redis()
        return self._client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.client.get(key)
        except Exception as e:
            raise StorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", key) from e
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise SnapshotDecodeError(f"{ERROR_INVALID_SNAPSHOT}: {e}", key) from e
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self.client.set(key, value)
        except Exception as e:
            raise StorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", key) from e


# Singleton instances
_redis_client = None
_storage: Optional[KeyValueStorage] = None


def get_redis():
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not config.UPSTASH_REDIS_REST_URL or not config.UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        from upstash_redis.asyncio import Redis

        _redis_client = Redis(
            url=config.UPSTASH_REDIS_REST_URL,
            token=config.UPSTASH_REDIS_REST_TOKEN,
        )

    return _redis_client


def create_storage(backend: str | None = None) -> KeyValueStorage:
    """Build a storage backend by name ("memory", "file" or "redis")."""
    backend = (backend or config.CART_STORAGE_BACKEND).lower()

    if backend == "memory":
        return MemoryStorage()
    elif backend == "file":
        return FileStorage()
    elif backend == "redis":
        return RedisStorage()
    raise ValueError(
        f"Unknown CART_STORAGE_BACKEND '{backend}', expected one of {', '.join(config.STORAGE_BACKENDS)}"
    )


def get_storage() -> KeyValueStorage:
    """Get the configured storage backend (singleton)."""
    global _storage

    if _storage is None:
        _storage = create_storage()
        logger.info(f"Cart storage backend: {type(_storage).__name__}")

    return _storage
