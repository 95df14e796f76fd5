"""
Cache utilities for the star history client.

This module provides the key/value stores GitHub resources and their etags
are cached in: an in-process LRU store and a file-backed store whose entries
survive between runs, both with TTL-based expiration.
"""
import hashlib
import json
import logging
import os
import shutil
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, Generic, Optional, Tuple, TypeVar, Union

from starcharts.api.github_exceptions import CacheException

logger = logging.getLogger(__name__)

# Type variable for generic cache value
T = TypeVar('T')

MEMORY_BACKEND = "memory"
FILE_BACKEND = "file"


class Cache(Generic[T], ABC):
    """Abstract base class for a cache implementation."""

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        """Get a value from the cache.

        Args:
            key: The cache key

        Returns:
            The cached value or None if not found or expired
        """
        pass

    @abstractmethod
    def put(self, key: str, value: T, ttl: Optional[int] = None) -> None:
        """Add or update a key-value pair in the cache.

        Args:
            key: The cache key
            value: The value to cache
            ttl: Optional time-to-live in seconds
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Remove a specific key from the cache.

        Args:
            key: The key to remove

        Returns:
            True if the key was removed, False if it didn't exist
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all entries from the cache."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        """Get the number of entries in the cache."""
        pass


class MemoryCache(Cache[T]):
    """In-process cache with LRU eviction and TTL-based expiration.

    Thread-safe; entries are lost when the process exits.
    """

    def __init__(self, max_size: int = 1000, default_ttl: int = 600):
        """Initialize the memory cache.

        Args:
            max_size: Maximum number of entries in the cache
            default_ttl: Default time-to-live in seconds
        """
        self.max_size = max_size
        self.default_ttl = default_ttl

        # Keeps access order, least recently used first
        self._cache = OrderedDict()
        self._lock = threading.RLock()

        logger.debug(f"Initialized MemoryCache with size={max_size}, ttl={default_ttl}s")

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            if key not in self._cache:
                return None

            entry = self._cache[key]
            if entry["expires_at"] < time.time():
                del self._cache[key]
                return None

            self._cache.move_to_end(key)
            return entry["value"]

    def put(self, key: str, value: T, ttl: Optional[int] = None) -> None:
        with self._lock:
            if ttl is None:
                ttl = self.default_ttl

            if len(self._cache) >= self.max_size and key not in self._cache:
                self._cache.popitem(last=False)

            current_time = time.time()
            self._cache[key] = {
                "value": value,
                "added_at": current_time,
                "expires_at": current_time + ttl
            }
            self._cache.move_to_end(key)

    def remove(self, key: str) -> bool:
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class FileCache(Cache[str]):
    """Cache persisted as one JSON file per key.

    File names are the SHA-256 of the key, fanned out over subdirectories by
    their first two characters. Writes go to a temporary file that is then
    renamed over the entry, so readers never see a partial entry. Unreadable
    or expired entries are deleted and reported as misses.
    """

    def __init__(self, cache_dir: Union[str, Path], default_ttl: int = 86400):
        """Initialize the file cache.

        Args:
            cache_dir: Directory the entries are stored in
            default_ttl: Default time-to-live in seconds

        Raises:
            CacheException: If the cache directory cannot be created
        """
        self.cache_dir = Path(cache_dir)
        self.default_ttl = default_ttl
        self._lock = threading.RLock()

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheException(f"Failed to create cache directory {self.cache_dir}: {e}") from e

        logger.debug(f"Initialized FileCache in {self.cache_dir}, ttl={default_ttl}s")

    def _path(self, key: str) -> Path:
        hashed = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / hashed[:2] / f"{hashed}.json"

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete cache file {path}: {e}")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        with self._lock:
            try:
                with open(path, "r", encoding="utf-8") as f:
                    entry = json.load(f)
            except FileNotFoundError:
                return None
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to read cache file {path}: {e}. Removing.")
                self._discard(path)
                return None

            if not isinstance(entry, dict) or entry.get("key") != key:
                self._discard(path)
                return None

            if entry.get("expires_at", 0) < time.time():
                logger.debug(f"Cache entry for {key} expired")
                self._discard(path)
                return None

            return entry.get("value")

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if ttl is None:
            ttl = self.default_ttl

        path = self._path(key)
        temp_path = path.with_suffix(".tmp")
        entry = {"key": key, "value": value, "expires_at": time.time() + ttl}

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(entry, f)
                os.replace(temp_path, path)
            except OSError as e:
                self._discard(temp_path)
                raise CacheException(f"Failed to write cache file {path}: {e}") from e

    def remove(self, key: str) -> bool:
        path = self._path(key)
        with self._lock:
            try:
                path.unlink()
                return True
            except FileNotFoundError:
                return False
            except OSError as e:
                raise CacheException(f"Failed to delete cache file {path}: {e}") from e

    def clear(self) -> None:
        with self._lock:
            shutil.rmtree(self.cache_dir, ignore_errors=True)
            self.cache_dir.mkdir(parents=True, exist_ok=True)

    def __len__(self) -> int:
        return sum(1 for _ in self.cache_dir.glob("*/*.json"))


class CacheManager:
    """Key/value store for GitHub resources and their etags.

    Values are serialized to JSON on the way in and decoded on the way out,
    so callers always get back an independent copy of what they stored.

    Features:
    - get/put/delete contract used by the API client
    - in-memory or file-backed storage with TTL-based expiration
    - Cache operation metrics
    - Thread-safe operations
    """

    def __init__(self, max_size: int = 10000, default_ttl: int = 86400, backend: str = MEMORY_BACKEND,
                 cache_dir: Optional[Union[str, Path]] = None, metrics_collector=None,
                 cache: Optional[Cache] = None):
        """Initialize the cache manager.

        Args:
            max_size: Maximum number of entries in the memory cache
            default_ttl: Default time-to-live in seconds
            backend: Storage backend, 'memory' or 'file'
            cache_dir: Directory for the file backend
            metrics_collector: Metrics collector instance
            cache: Optional custom cache implementation

        Raises:
            CacheException: If the file backend's directory cannot be created
        """
        self.metrics_collector = metrics_collector

        backend = (backend or MEMORY_BACKEND).lower()
        if cache is not None:
            self._cache = cache
        elif backend == FILE_BACKEND:
            self._cache = FileCache(cache_dir or Path("cache"), default_ttl=default_ttl)
        else:
            if backend != MEMORY_BACKEND:
                logger.warning(f"Unknown cache backend '{backend}', using '{MEMORY_BACKEND}'")
            self._cache = MemoryCache(max_size=max_size, default_ttl=default_ttl)

        logger.debug(f"Cache manager initialized with {type(self._cache).__name__}, ttl={default_ttl}s")

    def get(self, key: str) -> Tuple[Any, bool]:
        """Get a value from the cache.

        Args:
            key: The cache key

        Returns:
            Tuple of the decoded value (None on a miss) and whether it was found
        """
        raw = self._cache.get(key)
        if raw is None:
            return None, False

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            # An undecodable entry is as good as a miss
            logger.warning(f"Dropping undecodable cache entry {key}: {e}")
            self._cache.remove(key)
            return None, False

        if self.metrics_collector:
            self.metrics_collector.record_cache_operation("get")
        return value, True

    def put(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a value in the cache.

        Args:
            key: The cache key
            value: JSON-compatible value to cache
            ttl: Optional TTL in seconds (uses default if not specified)

        Raises:
            CacheException: If the value cannot be serialized or stored
        """
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            if self.metrics_collector:
                self.metrics_collector.record_cache_operation("put", success=False)
            raise CacheException(f"Failed to serialize value for {key}: {e}") from e

        try:
            self._cache.put(key, raw, ttl)
        except CacheException:
            if self.metrics_collector:
                self.metrics_collector.record_cache_operation("put", success=False)
            raise

        if self.metrics_collector:
            self.metrics_collector.record_cache_operation("put")

    def delete(self, key: str) -> None:
        """Delete a key from the cache. Deleting a missing key is not an error.

        Args:
            key: The key to delete

        Raises:
            CacheException: If the backend fails to delete the entry
        """
        self._cache.remove(key)
        if self.metrics_collector:
            self.metrics_collector.record_cache_operation("delete")

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
