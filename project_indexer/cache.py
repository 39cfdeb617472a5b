"""
Two-tier cache: in-memory dict in front of one JSON file per key.

File layout (<cache_dir>/<sanitized key>.json):
{
    "data": {...},
    "timestamp": "2024-01-15T10:30:00.123456",
    "ttl": 86400000
}
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

from . import config
from .models import CacheEntry

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]+")
MAX_KEY_LENGTH = 200


def sanitize_key(key: str) -> str:
    """Cache key → filename stem (non-alphanumeric runs → "_", max 200 chars)"""
    return _NON_ALNUM_RE.sub("_", key)[:MAX_KEY_LENGTH]


class CacheManager:
    """
    Memory + disk cache with per-entry TTL (milliseconds).

    Concurrent writers of the same key are not coordinated: the last
    write wins.
    """

    def __init__(self, cache_dir: Optional[str] = None, default_ttl: Optional[int] = None):
        self.cache_dir = Path(cache_dir or config.CACHE_DIR)
        self.default_ttl = default_ttl or config.CACHE_TTL_MS
        self._memory: dict[str, CacheEntry] = {}

    def init(self):
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create cache directory %s: %s", self.cache_dir, e)

    def _file_for(self, key: str) -> Path:
        return self.cache_dir / f"{sanitize_key(key)}.json"

    def get(self, key: str) -> Optional[Any]:
        """
        Return the cached value, or None when missing or expired.

        Memory is checked first; a valid disk entry is promoted to memory,
        an expired one is deleted.
        """
        entry = self._memory.get(key)
        if entry is not None:
            if not entry.is_expired():
                return entry.data
            self._memory.pop(key, None)

        cache_file = self._file_for(key)
        if not cache_file.exists():
            return None

        try:
            entry = CacheEntry.from_dict(json.loads(cache_file.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", cache_file, e)
            return None

        if entry.is_expired():
            logger.debug("Cache entry expired: %s", key)
            self.delete(key)
            return None

        self._memory[key] = entry
        return entry.data

    def set(self, key: str, data: Any, ttl: Optional[int] = None):
        """Store in both tiers; a failed disk write only gets logged"""
        entry = CacheEntry(data=data, ttl=ttl or self.default_ttl)
        self._memory[key] = entry

        cache_file = self._file_for(key)
        try:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            cache_file.write_text(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write cache file for key %s: %s", key, e)

    def delete(self, key: str):
        self._memory.pop(key, None)
        try:
            self._file_for(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete cache file for key %s: %s", key, e)

    def clear(self):
        self._memory.clear()
        if not self.cache_dir.is_dir():
            return
        for cache_file in self.cache_dir.glob("*.json"):
            try:
                cache_file.unlink()
            except OSError as e:
                logger.warning("Failed to delete cache file %s: %s", cache_file, e)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def get_file_checksum(self, file_path: str) -> Optional[str]:
        """Cheap change fingerprint: "<size>-<mtime ms>" """
        try:
            stat = os.stat(file_path)
        except OSError:
            return None
        return f"{stat.st_size}-{int(stat.st_mtime * 1000)}"

    def is_file_changed(self, file_path: str, cached_checksum: str) -> bool:
        return self.get_file_checksum(file_path) != cached_checksum

    def get_stats(self) -> dict:
        return {
            "memoryEntries": len(self._memory),
            "cacheDir": str(self.cache_dir),
        }
