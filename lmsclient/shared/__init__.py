"""Shared utilities: enums, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from lmsclient.shared.enums import CacheStrategy, DataSource, FailureCode, FailureKind
from lmsclient.shared.utils import ensure_utc, parse_iso, to_iso, utc_now

__all__ = [
    "CacheStrategy",
    "DataSource",
    "FailureCode",
    "FailureKind",
    "utc_now",
    "ensure_utc",
    "parse_iso",
    "to_iso",
]
