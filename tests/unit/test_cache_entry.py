"""Tests for CacheEntry creation, expiry and the persisted record format."""

from datetime import UTC, datetime, timedelta

import pytest

from lmsclient.infrastructure.cache.entry import CacheEntry, payload_size

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


class TestCreate:
    def test_expiry_from_ttl(self) -> None:
        entry = CacheEntry.create("k", {"a": 1}, timedelta(minutes=5), now=NOW)
        assert entry.created_at == NOW
        assert entry.expires_at == NOW + timedelta(minutes=5)
        assert entry.size_bytes == len(b'{"a":1}')

    def test_no_ttl_never_expires(self) -> None:
        entry = CacheEntry.create("k", [1], None, now=NOW)
        assert entry.expires_at is None
        assert not entry.is_expired(NOW + timedelta(days=3650))

    def test_size_counts_utf8_bytes(self) -> None:
        assert payload_size("é") == len('"é"'.encode())


class TestExpiry:
    def test_strictly_after_expires_at(self) -> None:
        entry = CacheEntry.create("k", 1, timedelta(seconds=10), now=NOW)
        assert not entry.is_expired(NOW + timedelta(seconds=10))
        assert entry.is_expired(NOW + timedelta(seconds=10, microseconds=1))

    def test_zero_ttl_expires_once_clock_moves(self) -> None:
        entry = CacheEntry.create("k", 1, timedelta(0), now=NOW)
        assert not entry.is_expired(NOW)
        assert entry.is_expired(NOW + timedelta(microseconds=1))

    def test_age(self) -> None:
        entry = CacheEntry.create("k", 1, None, now=NOW)
        assert entry.age(NOW + timedelta(minutes=3)) == timedelta(minutes=3)


class TestRecord:
    def test_record_shape(self) -> None:
        entry = CacheEntry.create("k", {"x": [1, 2]}, timedelta(hours=1), etag="v1", now=NOW)
        assert entry.to_record() == {
            "key": "k",
            "data": {"x": [1, 2]},
            "createdAt": "2025-01-15T12:00:00+00:00",
            "expiresAt": "2025-01-15T13:00:00+00:00",
            "etag": "v1",
            "size": entry.size_bytes,
        }

    def test_from_record_restores_entry(self) -> None:
        entry = CacheEntry.create("k", {"x": 1}, timedelta(hours=1), now=NOW)
        assert CacheEntry.from_record(entry.to_record()) == entry

    def test_from_record_accepts_z_suffix_and_null_expiry(self) -> None:
        entry = CacheEntry.from_record(
            {"key": "k", "data": None, "createdAt": "2025-01-15T12:00:00Z", "size": 4}
        )
        assert entry.created_at == NOW
        assert entry.expires_at is None
        assert entry.etag is None

    @pytest.mark.parametrize(
        "record",
        [
            [],
            {"data": 1, "createdAt": "2025-01-15T12:00:00Z", "size": 1},
            {"key": "", "data": 1, "createdAt": "2025-01-15T12:00:00Z", "size": 1},
            {"key": "k", "data": 1, "createdAt": "yesterday", "size": 1},
            {"key": "k", "data": 1, "createdAt": 12, "size": 1},
            {"key": "k", "data": 1, "createdAt": "2025-01-15T12:00:00Z", "size": -1},
            {"key": "k", "data": 1, "createdAt": "2025-01-15T12:00:00Z", "size": "1"},
            {"key": "k", "data": 1, "createdAt": "2025-01-15T12:00:00Z", "size": 1, "etag": 5},
            {"key": "k", "data": "x" * 50, "createdAt": "2025-01-15T12:00:00Z", "size": 0},
        ],
    )
    def test_malformed_records_rejected(self, record) -> None:
        with pytest.raises(ValueError):
            CacheEntry.from_record(record)
