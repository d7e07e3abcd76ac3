"""CacheEntry: one cached payload plus its bookkeeping, and its JSON record form."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from lmsclient.shared.utils.datetime import parse_iso, to_iso, utc_now


def serialize_payload(payload: Any) -> str:
    """Compact JSON text of a payload; raises TypeError/ValueError if not JSON-compatible."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def payload_size(payload: Any) -> int:
    """UTF-8 byte length of the compact JSON serialization."""
    return len(serialize_payload(payload).encode("utf-8"))


@dataclass(frozen=True)
class CacheEntry:
    """Cached payload with creation time, optional expiry and ETag.

    Entries are replaced wholesale, never patched.
    """

    key: str
    payload: Any
    created_at: datetime
    expires_at: datetime | None
    etag: str | None
    size_bytes: int

    @classmethod
    def create(
        cls,
        key: str,
        payload: Any,
        ttl: timedelta | None,
        etag: str | None = None,
        now: datetime | None = None,
    ) -> CacheEntry:
        """Build an entry stamped at now with expires_at = now + ttl (None = never)."""
        created_at = now or utc_now()
        return cls(
            key=key,
            payload=payload,
            created_at=created_at,
            expires_at=created_at + ttl if ttl is not None else None,
            etag=etag,
            size_bytes=payload_size(payload),
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once now is strictly after expires_at."""
        if self.expires_at is None:
            return False
        return (now or utc_now()) > self.expires_at

    def age(self, now: datetime | None = None) -> timedelta:
        return (now or utc_now()) - self.created_at

    def to_record(self) -> dict[str, Any]:
        """Persisted JSON record shape."""
        return {
            "key": self.key,
            "data": self.payload,
            "createdAt": to_iso(self.created_at),
            "expiresAt": to_iso(self.expires_at),
            "etag": self.etag,
            "size": self.size_bytes,
        }

    @classmethod
    def from_record(cls, record: Any) -> CacheEntry:
        """Parse a persisted record.

        Raises:
            ValueError: If a field is missing or has the wrong type, or the
                stored size differs from the size of the data.
        """
        if not isinstance(record, dict):
            raise ValueError("Cache record must be a JSON object")
        try:
            key = record["key"]
            payload = record["data"]
            created_at = parse_iso(record["createdAt"])
            expires_at = parse_iso(record.get("expiresAt"))
            etag = record.get("etag")
            size = record["size"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed cache record: {e}") from e
        if not isinstance(key, str) or not key:
            raise ValueError("Cache record key must be a non-empty string")
        if created_at is None:
            raise ValueError("Cache record createdAt must not be null")
        if etag is not None and not isinstance(etag, str):
            raise ValueError("Cache record etag must be a string or null")
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValueError("Cache record size must be a non-negative integer")
        actual_size = payload_size(payload)
        if size != actual_size:
            raise ValueError(
                f"Cache record size {size} does not match data ({actual_size} bytes)"
            )
        return cls(
            key=key,
            payload=payload,
            created_at=created_at,
            expires_at=expires_at,
            etag=etag,
            size_bytes=size,
        )

    def __str__(self) -> str:
        return f"CacheEntry(key={self.key}, size={self.size_bytes}, expires_at={to_iso(self.expires_at)})"
