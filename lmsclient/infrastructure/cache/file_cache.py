"""Bounded persistent cache: in-memory index mirrored one JSON file per key.

The index is authoritative while the process runs; files exist so the
cache survives restarts. initialize() reconciles the two: unreadable or
expired records are deleted (and logged), never retried.

Capacity is enforced before every put by evicting the entry with the
oldest created_at until the new entry fits. This is insertion-order
eviction: reading an entry does not refresh it.
"""

from __future__ import annotations

import asyncio
import copy
import fnmatch
import json
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from lmsclient.core.config import Settings
from lmsclient.core.constants import CACHE_FILE_SUFFIX
from lmsclient.domain.failures import CacheFailure
from lmsclient.domain.result import Error, Result, Success
from lmsclient.infrastructure.cache.entry import CacheEntry, serialize_payload
from lmsclient.infrastructure.cache.keys import key_filename
from lmsclient.infrastructure.cache.stats import CacheStats
from lmsclient.shared.telemetry.logging import get_logger
from lmsclient.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class FileCacheStore:
    """Bounded key/value cache persisted under cache_dir.

    Create one instance per process and inject it; it owns cache_dir
    exclusively. Mutations of the index are serialized by an asyncio.Lock
    so tasks interleaving at disk I/O cannot break the capacity limits.
    Disk writes are not atomic; a torn record is discarded on the next
    initialize().
    """

    def __init__(
        self,
        cache_dir: Path | str,
        *,
        max_size_bytes: int = 50 * 1024 * 1024,
        max_entries: int = 1000,
        default_ttl: timedelta | None = timedelta(hours=1),
        max_entry_fraction: float = 0.1,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the store (no I/O until first use).

        Args:
            cache_dir: Directory holding one <sanitized key>.json per entry.
            max_size_bytes: Upper bound on the sum of entry sizes.
            max_entries: Upper bound on entry count.
            default_ttl: TTL used when put() gets ttl=None; None means entries never expire.
            max_entry_fraction: Largest single entry as a share of max_size_bytes.
            clock: Source of the current UTC time (injectable for tests).
        """
        if max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if not 0 < max_entry_fraction <= 1:
            raise ValueError("max_entry_fraction must be in (0, 1]")
        self.cache_dir = Path(cache_dir).expanduser()
        self.max_size_bytes = max_size_bytes
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self.max_entry_size_bytes = int(max_size_bytes * max_entry_fraction)
        self._clock = clock
        self._index: dict[str, CacheEntry] = {}
        self._total_size = 0
        self._hit_count = 0
        self._miss_count = 0
        self._initialized = False
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> FileCacheStore:
        """Build a store from the cache_* settings."""
        return cls(
            settings.cache_dir,
            max_size_bytes=settings.cache_max_size_bytes,
            max_entries=settings.cache_max_entries,
            default_ttl=settings.cache_default_ttl,
            max_entry_fraction=settings.cache_max_entry_fraction,
            **kwargs,
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def total_size(self) -> int:
        return self._total_size

    def __len__(self) -> int:
        return len(self._index)

    def _path_for(self, key: str) -> Path:
        return self.cache_dir / key_filename(key)

    # ---- Lifecycle ----

    async def initialize(self) -> Result[None]:
        """Open cache_dir and load valid records into the index.

        Idempotent: a no-op after the first success. Fails with
        CacheFailure.corrupted_data only when the directory itself cannot
        be created or listed; bad records are removed and skipped.
        """
        if self._initialized:
            return Success(None)
        async with self._lock:
            if self._initialized:
                return Success(None)
            try:
                await aiofiles.os.makedirs(self.cache_dir, exist_ok=True)
                names = await aiofiles.os.listdir(self.cache_dir)
            except OSError as e:
                logger.error("Cache initialization failed for %s: %s", self.cache_dir, e)
                return Error(CacheFailure.corrupted_data(str(e)))
            await self._load_index(names)
            await self._cleanup_expired()
            await self._trim_to_capacity()
            self._initialized = True
            logger.info(
                "Cache initialized: %s entries, %s bytes (%s)",
                len(self._index),
                self._total_size,
                self.cache_dir,
            )
            return Success(None)

    async def _ensure_initialized(self) -> Result[None]:
        if self._initialized:
            return Success(None)
        return await self.initialize()

    def close(self) -> None:
        """Drop the in-memory index; the next call re-initializes from disk."""
        self._index.clear()
        self._total_size = 0
        self._hit_count = 0
        self._miss_count = 0
        self._initialized = False

    async def _load_index(self, names: list[str]) -> None:
        now = self._clock()
        for name in sorted(names):
            if not name.endswith(CACHE_FILE_SUFFIX):
                continue
            path = self.cache_dir / name
            try:
                async with aiofiles.open(path, "r", encoding="utf-8") as f:
                    content = await f.read()
                entry = CacheEntry.from_record(json.loads(content))
            except IsADirectoryError:
                continue
            except (OSError, UnicodeDecodeError, ValueError) as e:
                logger.warning("Removing corrupted cache file %s: %s", path, e)
                await self._discard_file(path)
                continue
            if key_filename(entry.key) != name:
                logger.warning("Removing cache file %s: key %r maps elsewhere", path, entry.key)
                await self._discard_file(path)
                continue
            if entry.size_bytes > self.max_entry_size_bytes:
                logger.warning(
                    "Removing cache file %s: %s bytes exceeds entry limit %s",
                    path,
                    entry.size_bytes,
                    self.max_entry_size_bytes,
                )
                await self._discard_file(path)
                continue
            if entry.is_expired(now):
                await self._discard_file(path)
                continue
            self._index[entry.key] = entry
            self._total_size += entry.size_bytes

    async def _discard_file(self, path: Path) -> None:
        """Delete a record during reconciliation; failures are logged, not raised."""
        try:
            await self._delete_file(path)
        except OSError as e:
            logger.warning("Could not delete cache file %s: %s", path, e)

    async def _cleanup_expired(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._index.items() if entry.is_expired(now)]
        for key in expired:
            try:
                await self._remove_entry(key)
            except OSError as e:
                logger.warning("Could not delete expired cache file for %s: %s", key, e)
        if expired:
            logger.info("Cache cleaned up %s expired entries", len(expired))

    async def _trim_to_capacity(self) -> None:
        """Evict oldest entries loaded beyond current limits (e.g. after lowering them)."""
        while self._index and (
            self._total_size > self.max_size_bytes or len(self._index) > self.max_entries
        ):
            try:
                await self._evict_oldest()
            except OSError as e:
                logger.warning("Could not delete evicted cache file: %s", e)

    # ---- Capacity ----

    async def _ensure_space(self, incoming_size: int) -> None:
        while self._index and (
            self._total_size + incoming_size > self.max_size_bytes
            or len(self._index) >= self.max_entries
        ):
            await self._evict_oldest()

    async def _evict_oldest(self) -> None:
        oldest = min(self._index.values(), key=lambda entry: entry.created_at)
        await self._remove_entry(oldest.key)
        logger.debug("Cache EVICT: %s (%s bytes)", oldest.key, oldest.size_bytes)

    async def _remove_entry(self, key: str) -> None:
        entry = self._index.pop(key, None)
        if entry is not None:
            self._total_size -= entry.size_bytes
        await self._delete_file(self._path_for(key))

    async def _delete_file(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass

    # ---- Operations ----

    async def put(
        self,
        key: str,
        payload: Any,
        ttl: timedelta | None = None,
        etag: str | None = None,
    ) -> Result[None]:
        """Store payload under key, replacing any prior entry for key.

        Args:
            key: Logical resource key.
            payload: JSON-compatible value.
            ttl: Lifetime; None uses default_ttl.
            etag: Optional validator returned by the server.

        Returns:
            Success(None), or Error with CacheFailure.size_limit_exceeded when the
            payload is larger than max_entry_size_bytes, or corrupted_data when it
            cannot be serialized or written.
        """
        init = await self._ensure_initialized()
        if init.is_error:
            return init
        try:
            serialized = serialize_payload(payload)
        except (TypeError, ValueError) as e:
            return Error(CacheFailure.corrupted_data(f"Payload is not JSON-serializable: {e}"))
        size = len(serialized.encode("utf-8"))
        if size > self.max_entry_size_bytes:
            logger.warning(
                "Cache rejected %s: %s bytes exceeds entry limit %s",
                key,
                size,
                self.max_entry_size_bytes,
            )
            return Error(CacheFailure.size_limit_exceeded(size, self.max_entry_size_bytes))

        effective_ttl = ttl if ttl is not None else self.default_ttl
        # Store the decoded copy so later mutation by the caller cannot leak in.
        entry = CacheEntry.create(
            key, json.loads(serialized), effective_ttl, etag=etag, now=self._clock()
        )
        async with self._lock:
            try:
                if key in self._index:
                    await self._remove_entry(key)
                await self._ensure_space(entry.size_bytes)
                record = json.dumps(entry.to_record(), ensure_ascii=False)
                async with aiofiles.open(self._path_for(key), "w", encoding="utf-8") as f:
                    await f.write(record)
            except OSError as e:
                logger.error("Cache write failed for %s: %s", key, e)
                return Error(CacheFailure.corrupted_data(str(e)))
            self._index[key] = entry
            self._total_size += entry.size_bytes
        logger.debug(
            "Cache SET: %s (%s bytes, expires: %s)", key, entry.size_bytes, entry.expires_at
        )
        return Success(None)

    async def get_entry(self, key: str) -> Result[CacheEntry | None]:
        """Return the whole entry under the same rules as get().

        Success(entry) on hit, Success(None) on miss, Error(expired) after
        evicting an expired entry.
        """
        init = await self._ensure_initialized()
        if init.is_error:
            return Error(init.failure)
        async with self._lock:
            entry = self._index.get(key)
            if entry is None:
                self._miss_count += 1
                logger.debug("Cache MISS: %s", key)
                return Success(None)
            if entry.is_expired(self._clock()):
                self._miss_count += 1
                try:
                    await self._remove_entry(key)
                except OSError as e:
                    logger.warning("Failed to delete expired cache file for %s: %s", key, e)
                logger.debug("Cache EXPIRED: %s", key)
                return Error(CacheFailure.expired(key))
            self._hit_count += 1
        logger.debug("Cache HIT: %s (age: %s)", key, entry.age(self._clock()))
        return Success(entry)

    async def get(self, key: str) -> Result[Any]:
        """Success(payload) on hit, Success(None) on miss, Error(expired) on expiry.

        Expired and absent are different signals: an expired entry is
        evicted and reported as CacheFailure.expired, so a second get()
        then reports a plain miss.
        """
        result = await self.get_entry(key)
        return result.map(lambda entry: copy.deepcopy(entry.payload) if entry else None)

    async def get_stale(self, key: str) -> Result[Any]:
        """Payload for key even if expired, without eviction or counters."""
        init = await self._ensure_initialized()
        if init.is_error:
            return Error(init.failure)
        entry = self._index.get(key)
        return Success(copy.deepcopy(entry.payload) if entry else None)

    async def contains(self, key: str) -> bool:
        """True if key is present and unexpired. Does not count as a lookup."""
        init = await self._ensure_initialized()
        if init.is_error:
            return False
        entry = self._index.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    async def keys(self) -> list[str]:
        """Keys currently indexed, oldest first."""
        init = await self._ensure_initialized()
        if init.is_error:
            return []
        return [
            entry.key for entry in sorted(self._index.values(), key=lambda e: e.created_at)
        ]

    async def remove(self, key: str) -> Result[None]:
        """Delete key from index and disk. Absent keys are not an error."""
        init = await self._ensure_initialized()
        if init.is_error:
            return init
        async with self._lock:
            try:
                await self._remove_entry(key)
            except OSError as e:
                logger.error("Cache remove failed for %s: %s", key, e)
                return Error(CacheFailure.corrupted_data(str(e)))
        logger.debug("Cache DELETE: %s", key)
        return Success(None)

    async def remove_matching(self, pattern: str) -> Result[int]:
        """Delete every key matching a glob pattern (fnmatch, case-sensitive)."""
        init = await self._ensure_initialized()
        if init.is_error:
            return Error(init.failure)
        async with self._lock:
            matched = [key for key in self._index if fnmatch.fnmatchcase(key, pattern)]
            try:
                for key in matched:
                    await self._remove_entry(key)
            except OSError as e:
                logger.error("Cache invalidation failed for %s: %s", pattern, e)
                return Error(CacheFailure.corrupted_data(str(e)))
        if matched:
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, len(matched))
        return Success(len(matched))

    async def clear(self) -> Result[None]:
        """Delete every cache record on disk and empty the index."""
        init = await self._ensure_initialized()
        if init.is_error:
            return init
        async with self._lock:
            try:
                for name in await aiofiles.os.listdir(self.cache_dir):
                    if name.endswith(CACHE_FILE_SUFFIX):
                        await self._delete_file(self.cache_dir / name)
            except OSError as e:
                logger.error("Cache clear failed for %s: %s", self.cache_dir, e)
                return Error(CacheFailure.corrupted_data(str(e)))
            finally:
                self._index.clear()
                self._total_size = 0
        logger.info("Cache CLEARED: all entries deleted")
        return Success(None)

    def stats(self) -> CacheStats:
        """Snapshot of entry count, total size and hit/miss counters."""
        return CacheStats(
            entries=len(self._index),
            total_size_bytes=self._total_size,
            hit_count=self._hit_count,
            miss_count=self._miss_count,
            max_size_bytes=self.max_size_bytes,
            max_entries=self.max_entries,
        )
