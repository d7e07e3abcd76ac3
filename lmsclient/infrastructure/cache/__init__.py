"""Cache: bounded file-backed store and cache key utilities.

Used by CachedFetchOrchestrator. Key format lives in keys.py (DRY);
the persisted record format lives in entry.py.
"""

from lmsclient.infrastructure.cache.cache_protocol import CacheStoreProtocol
from lmsclient.infrastructure.cache.entry import CacheEntry
from lmsclient.infrastructure.cache.file_cache import FileCacheStore
from lmsclient.infrastructure.cache.keys import build_cache_key, key_filename, sanitize_key
from lmsclient.infrastructure.cache.stats import CacheStats

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheStoreProtocol",
    "FileCacheStore",
    "build_cache_key",
    "key_filename",
    "sanitize_key",
]
