"""Cache store protocol (DIP). Implementation: FileCacheStore."""

from datetime import timedelta
from typing import Any, Protocol

from lmsclient.domain.result import Result
from lmsclient.infrastructure.cache.entry import CacheEntry
from lmsclient.infrastructure.cache.stats import CacheStats


class CacheStoreProtocol(Protocol):
    """Protocol for the bounded cache used by CachedFetchOrchestrator."""

    async def initialize(self) -> Result[None]:
        """Open storage and load the index. Idempotent."""
        ...

    async def put(
        self,
        key: str,
        payload: Any,
        ttl: timedelta | None = None,
        etag: str | None = None,
    ) -> Result[None]:
        """Store payload under key, replacing any prior entry."""
        ...

    async def get(self, key: str) -> Result[Any]:
        """Success(payload) on hit, Success(None) on miss, Error(expired) on expiry."""
        ...

    async def get_entry(self, key: str) -> Result[CacheEntry | None]:
        """Like get() but returns the whole entry."""
        ...

    async def get_stale(self, key: str) -> Result[Any]:
        """Payload regardless of expiry; Success(None) when absent."""
        ...

    async def contains(self, key: str) -> bool:
        """True if key is present and unexpired."""
        ...

    async def remove(self, key: str) -> Result[None]:
        """Delete key from index and storage."""
        ...

    async def remove_matching(self, pattern: str) -> Result[int]:
        """Delete keys matching a glob pattern; returns count."""
        ...

    async def clear(self) -> Result[None]:
        """Delete every entry."""
        ...

    def stats(self) -> CacheStats:
        """Entry count, size and hit/miss counters."""
        ...
