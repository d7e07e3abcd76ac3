"""Cache key builders and filename sanitization. Single place for key format (DRY).

Keys are 'prefix' or 'prefix_k1=v1&k2=v2' built from the non-None request
parameters, in the order given. On disk each key becomes a filename by
replacing every character outside [A-Za-z0-9_.-] with '_'. Two distinct
keys that sanitize identically share a file; that collision is accepted.
Stems longer than CACHE_FILENAME_MAX_STEM characters (e.g. calendar events
filtered by many context codes) are truncated and suffixed with a SHA-256
digest of the full key, so they remain valid filenames.
"""

import hashlib
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from lmsclient.core.constants import (
    CACHE_FILE_SUFFIX,
    CACHE_FILENAME_HASH_LENGTH,
    CACHE_FILENAME_MAX_STEM,
    CACHE_FILENAME_PATTERN,
    CACHE_FILENAME_REPLACEMENT,
    CACHE_KEY_SEP,
    CACHE_PARAM_SEP,
    CACHE_PREFIX_ALL_ASSIGNMENTS,
    CACHE_PREFIX_ASSIGNMENT,
    CACHE_PREFIX_ASSIGNMENTS,
    CACHE_PREFIX_CALENDAR_EVENTS,
    CACHE_PREFIX_COURSE,
    CACHE_PREFIX_COURSES,
    CACHE_PREFIX_MODULES,
    CACHE_PREFIX_SEARCH_COURSES,
    CACHE_PREFIX_UPCOMING_ASSIGNMENTS,
    CACHE_PREFIX_USER,
)

_FILENAME_RE = re.compile(CACHE_FILENAME_PATTERN)


def sanitize_key(key: str) -> str:
    """Map a cache key to a filesystem-safe file stem."""
    return _FILENAME_RE.sub(CACHE_FILENAME_REPLACEMENT, key)


def key_filename(key: str) -> str:
    """Filename of the persisted record for key."""
    stem = sanitize_key(key)
    if len(stem) > CACHE_FILENAME_MAX_STEM:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:CACHE_FILENAME_HASH_LENGTH]
        keep = CACHE_FILENAME_MAX_STEM - CACHE_FILENAME_HASH_LENGTH - 1
        stem = f"{stem[:keep]}{CACHE_KEY_SEP}{digest}"
    return f"{stem}{CACHE_FILE_SUFFIX}"


def _format_param(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def build_cache_key(prefix: str, params: Mapping[str, Any] | None = None) -> str:
    """Build 'prefix' or 'prefix_k1=v1&k2=v2' skipping None-valued params.

    Args:
        prefix: Resource-class prefix (e.g. 'courses', 'assignments_42').
        params: Request parameters; lists are comma-joined, datetimes ISO-8601.

    Returns:
        Cache key string.
    """
    if not params:
        return prefix
    parts = [f"{name}={_format_param(value)}" for name, value in params.items() if value is not None]
    if not parts:
        return prefix
    return f"{prefix}{CACHE_KEY_SEP}{CACHE_PARAM_SEP.join(parts)}"


def user_key() -> str:
    """Cache key for the current user."""
    return CACHE_PREFIX_USER


def courses_key(params: Mapping[str, Any] | None = None) -> str:
    """Cache key for a course listing with its query parameters."""
    return build_cache_key(CACHE_PREFIX_COURSES, params)


def course_key(course_id: int | str) -> str:
    """Cache key for one course."""
    return f"{CACHE_PREFIX_COURSE}{CACHE_KEY_SEP}{course_id}"


def course_assignments_key(course_id: int | str, params: Mapping[str, Any] | None = None) -> str:
    """Cache key for a course's assignment listing."""
    return build_cache_key(f"{CACHE_PREFIX_ASSIGNMENTS}{CACHE_KEY_SEP}{course_id}", params)


def assignment_key(course_id: int | str, assignment_id: int | str) -> str:
    """Cache key for one assignment within a course."""
    return f"{CACHE_PREFIX_ASSIGNMENT}{CACHE_KEY_SEP}{course_id}{CACHE_KEY_SEP}{assignment_id}"


def all_assignments_key(params: Mapping[str, Any] | None = None) -> str:
    """Cache key for assignments across all active courses."""
    return build_cache_key(CACHE_PREFIX_ALL_ASSIGNMENTS, params)


def upcoming_assignments_key(days_ahead: int) -> str:
    """Cache key for assignments due within days_ahead days."""
    return f"{CACHE_PREFIX_UPCOMING_ASSIGNMENTS}{CACHE_KEY_SEP}{days_ahead}"


def calendar_events_key(params: Mapping[str, Any] | None = None) -> str:
    """Cache key for calendar events with their filters."""
    return build_cache_key(CACHE_PREFIX_CALENDAR_EVENTS, params)


def course_modules_key(course_id: int | str) -> str:
    """Cache key for a course's modules."""
    return f"{CACHE_PREFIX_MODULES}{CACHE_KEY_SEP}{course_id}"


def search_courses_key(query: str) -> str:
    """Cache key for a course search (case-insensitive query)."""
    return f"{CACHE_PREFIX_SEARCH_COURSES}{CACHE_KEY_SEP}{query.lower()}"

