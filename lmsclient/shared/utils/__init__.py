"""Shared utilities: datetime helpers."""

from lmsclient.shared.utils.datetime import (
    ensure_utc,
    parse_iso,
    to_iso,
    utc_now,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "parse_iso",
    "to_iso",
]
