"""JSON file cache store with TTL semantics.

Each key is stored as its own JSON file in the cache directory:
{
    "key": "...",
    "expires_at": 1718000000.0,
    "value": {...}
}
"""

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any

from toolhub_server.errors import CacheUnavailableError

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileCacheStore:
    """Persisted key -> JSON document store.

    Entries carry an absolute expiry time; expired entries read as missing
    and are removed lazily, as are entries that fail to decode. Filesystem
    failures are raised as CacheUnavailableError so callers can fall back to
    in-memory state.
    """

    def __init__(self, cache_dir: Path):
        """Initialize the cache store.

        Args:
            cache_dir: Directory holding one JSON file per key.
                       Created on first write if it doesn't exist.
        """
        self.cache_dir = cache_dir

    def _path_for(self, key: str) -> Path:
        return self.cache_dir / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> Any | None:
        """Read a cached value.

        Args:
            key: Cache key

        Returns:
            The stored value, or None if the key is missing, expired or
            its file is corrupt (corrupt entries are removed)

        Raises:
            CacheUnavailableError: If the entry cannot be read
        """
        file_path = self._path_for(key)

        try:
            if not file_path.exists():
                return None
            with open(file_path, "r", encoding="utf-8") as f:
                entry = json.load(f)
        except OSError as e:
            raise CacheUnavailableError(f"Failed to read cache entry '{key}': {e}") from e
        except ValueError as e:
            logger.warning(f"Discarding corrupt cache entry '{key}': {e}")
            self.delete(key)
            return None

        if not isinstance(entry, dict):
            logger.warning(f"Discarding corrupt cache entry '{key}': not an object")
            self.delete(key)
            return None

        expires_at = entry.get("expires_at")
        if expires_at is not None and (
            not isinstance(expires_at, (int, float)) or expires_at <= time.time()
        ):
            logger.debug(f"Cache entry '{key}' expired")
            self.delete(key)
            return None

        return entry.get("value")

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value.

        The entry is written to a temporary file and moved into place so
        readers never see a partially written document.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Lifetime in seconds, or None for no expiry

        Raises:
            CacheUnavailableError: If the entry cannot be written
        """
        file_path = self._path_for(key)
        tmp_path = file_path.with_suffix(".json.tmp")
        entry = {
            "key": key,
            "expires_at": time.time() + ttl if ttl is not None else None,
            "value": value,
        }

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(entry, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, file_path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheUnavailableError(f"Failed to write cache entry '{key}': {e}") from e

        logger.debug(f"Cached '{key}' (ttl={ttl})")

    def delete(self, key: str) -> bool:
        """Remove a cache entry.

        Returns:
            True if an entry was removed, False if none existed

        Raises:
            CacheUnavailableError: If the entry exists but cannot be removed
        """
        file_path = self._path_for(key)
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheUnavailableError(f"Failed to delete cache entry '{key}': {e}") from e
        return True

    def clear(self) -> int:
        """Remove every entry in the cache directory.

        Returns:
            Number of entries removed
        """
        if not self.cache_dir.exists():
            return 0

        removed = 0
        try:
            for file_path in self.cache_dir.glob("*.json"):
                file_path.unlink()
                removed += 1
        except OSError as e:
            raise CacheUnavailableError(f"Failed to clear cache: {e}") from e

        logger.info(f"Cleared {removed} cache entries")
        return removed
