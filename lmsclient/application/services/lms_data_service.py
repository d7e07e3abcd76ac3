"""LMS data service: proxy resources bound to cache keys and cache policies.

Each public getter builds its cache key from the request parameters, picks
the preset policy of its resource class (overridable per call) and lets
CachedFetchOrchestrator decide between cache and network. Payloads stay
opaque JSON (dicts and lists as returned by the proxy).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Any

from lmsclient.application.services.cached_fetch import CachedFetchOrchestrator
from lmsclient.core.constants import (
    CACHE_PREFIX_ALL_ASSIGNMENTS,
    CACHE_PREFIX_UPCOMING_ASSIGNMENTS,
    ENDPOINT_CALENDAR_EVENTS,
    ENDPOINT_COURSES,
    ENDPOINT_USER_SELF,
)
from lmsclient.domain.failures import GeneralFailure
from lmsclient.domain.policies import CachePolicies, CachePolicy
from lmsclient.domain.result import Error, Result, Success
from lmsclient.infrastructure.cache import keys
from lmsclient.infrastructure.cache.stats import CacheStats
from lmsclient.infrastructure.network.resilient_client import ResilientClient
from lmsclient.shared.telemetry.logging import get_logger
from lmsclient.shared.utils.datetime import parse_iso, to_iso, utc_now

logger = get_logger(__name__)

# Page size used when a getter aggregates over every course.
_AGGREGATE_PER_PAGE = 100


def _query_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


def _due_at(item: dict[str, Any]) -> datetime | None:
    try:
        return parse_iso(item.get("due_at"))
    except (TypeError, ValueError):
        return None


def _sort_by_due(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Earliest due date first; items without a due date last."""
    return sorted(items, key=lambda item: (_due_at(item) is None, _due_at(item) or datetime.min))


class LmsDataService:
    """Cached access to users, courses, assignments, modules and calendar events."""

    def __init__(
        self,
        orchestrator: CachedFetchOrchestrator,
        client: ResilientClient,
        policies: CachePolicies | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._orchestrator = orchestrator
        self._client = client
        self.policies = policies or CachePolicies.defaults()
        self._clock = clock

    # ---- Lifecycle ----

    async def initialize(self) -> Result[None]:
        """Load the cache index from disk."""
        return await self._orchestrator.store.initialize()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def is_authenticated(self) -> bool:
        return await self._client.is_authenticated()

    async def test_connection(self) -> Result[bool]:
        """Probe the proxy health endpoint."""
        return await self._client.check_connection()

    # ---- Single resources ----

    async def get_current_user(
        self, *, policy: CachePolicy | None = None, force_refresh: bool = False
    ) -> Result[Any]:
        return await self._orchestrator.fetch(
            keys.user_key(),
            policy or self.policies.user,
            lambda: self._client.get(ENDPOINT_USER_SELF),
            force_refresh=force_refresh,
        )

    async def get_course(
        self,
        course_id: int | str,
        *,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[Any]:
        return await self._orchestrator.fetch(
            keys.course_key(course_id),
            policy or self.policies.courses,
            lambda: self._client.get(f"{ENDPOINT_COURSES}/{course_id}"),
            force_refresh=force_refresh,
        )

    async def get_assignment(
        self,
        course_id: int | str,
        assignment_id: int | str,
        *,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[Any]:
        return await self._orchestrator.fetch(
            keys.assignment_key(course_id, assignment_id),
            policy or self.policies.assignments,
            lambda: self._client.get(
                f"{ENDPOINT_COURSES}/{course_id}/assignments/{assignment_id}"
            ),
            force_refresh=force_refresh,
        )

    async def get_course_modules(
        self,
        course_id: int | str,
        *,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[Any]:
        return await self._orchestrator.fetch(
            keys.course_modules_key(course_id),
            policy or self.policies.courses,
            lambda: self._client.get(f"{ENDPOINT_COURSES}/{course_id}/modules"),
            force_refresh=force_refresh,
        )

    # ---- Listings ----

    async def get_courses(
        self,
        *,
        enrollment_state: str | None = None,
        include: Sequence[str] | None = None,
        state: str | None = None,
        per_page: int | None = None,
        page: str | None = None,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[Any]:
        """List the user's courses (one page)."""
        params = {
            "enrollment_state": enrollment_state,
            "include": include,
            "state": state,
            "per_page": per_page,
            "page": page,
        }
        return await self._orchestrator.fetch(
            keys.courses_key(params),
            policy or self.policies.courses,
            lambda: self._client.get(ENDPOINT_COURSES, params=self._query(params)),
            force_refresh=force_refresh,
        )

    async def get_course_assignments(
        self,
        course_id: int | str,
        *,
        include: Sequence[str] | None = None,
        order_by: str | None = None,
        search_term: str | None = None,
        due_before: datetime | None = None,
        due_after: datetime | None = None,
        per_page: int | None = None,
        page: str | None = None,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[Any]:
        """List one course's assignments (one page)."""
        params = {
            "include": include,
            "order_by": order_by,
            "search_term": search_term,
            "due_before": due_before,
            "due_after": due_after,
            "per_page": per_page,
            "page": page,
        }
        return await self._orchestrator.fetch(
            keys.course_assignments_key(course_id, params),
            policy or self.policies.assignments,
            lambda: self._client.get(
                f"{ENDPOINT_COURSES}/{course_id}/assignments", params=self._query(params)
            ),
            force_refresh=force_refresh,
        )

    async def get_calendar_events(
        self,
        *,
        event_type: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        context_codes: Sequence[str] | None = None,
        include: Sequence[str] | None = None,
        per_page: int | None = None,
        page: str | None = None,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[Any]:
        """List calendar events matching the filters (one page)."""
        params = {
            "type": event_type,
            "start_date": start_date,
            "end_date": end_date,
            "context_codes": context_codes,
            "include": include,
            "per_page": per_page,
            "page": page,
        }
        return await self._orchestrator.fetch(
            keys.calendar_events_key(params),
            policy or self.policies.calendar,
            lambda: self._client.get(ENDPOINT_CALENDAR_EVENTS, params=self._query(params)),
            force_refresh=force_refresh,
        )

    # ---- Aggregates ----

    async def get_all_assignments(
        self,
        *,
        due_before: datetime | None = None,
        due_after: datetime | None = None,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[list[dict[str, Any]]]:
        """Assignments across all courses, each tagged with its course, sorted by due date.

        A course whose assignment listing fails is skipped (logged); failing
        to list the courses fails the whole call.
        """
        params = {"due_before": due_before, "due_after": due_after}
        return await self._orchestrator.fetch(
            keys.all_assignments_key(params),
            policy or self.policies.assignments,
            lambda: self._collect_assignments(due_before=due_before, due_after=due_after),
            force_refresh=force_refresh,
        )

    async def get_upcoming_assignments(
        self,
        days_ahead: int = 7,
        *,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[list[dict[str, Any]]]:
        """Assignments due between now and now + days_ahead, earliest first.

        A negative days_ahead is Error(GeneralFailure.configuration_error).
        """
        if days_ahead < 0:
            return Error(GeneralFailure.configuration_error("days_ahead must be >= 0"))

        async def fetch_upcoming() -> Result[list[dict[str, Any]]]:
            now = self._clock()
            horizon = now + timedelta(days=days_ahead)
            collected = await self._collect_assignments(due_after=now, due_before=horizon)
            return collected.map(
                lambda items: [
                    item
                    for item in items
                    if (due := _due_at(item)) is not None and now <= due <= horizon
                ]
            )

        return await self._orchestrator.fetch(
            keys.upcoming_assignments_key(days_ahead),
            policy or self.policies.assignments,
            fetch_upcoming,
            force_refresh=force_refresh,
        )

    async def search_courses(
        self,
        query: str,
        *,
        policy: CachePolicy | None = None,
        force_refresh: bool = False,
    ) -> Result[list[dict[str, Any]]]:
        """Courses whose name or course code contains query (case-insensitive)."""
        needle = query.lower()

        async def fetch_matches() -> Result[list[dict[str, Any]]]:
            courses = await self._list_courses()
            return courses.map(
                lambda items: [
                    course
                    for course in items
                    if needle in str(course.get("name") or "").lower()
                    or needle in str(course.get("course_code") or "").lower()
                ]
            )

        return await self._orchestrator.fetch(
            keys.search_courses_key(query),
            policy or self.policies.courses,
            fetch_matches,
            force_refresh=force_refresh,
        )

    async def _list_courses(self) -> Result[list[dict[str, Any]]]:
        result = await self._client.get(ENDPOINT_COURSES, params={"per_page": _AGGREGATE_PER_PAGE})
        return result.map(lambda data: [c for c in data or [] if isinstance(c, dict)])

    async def _collect_assignments(
        self,
        *,
        due_before: datetime | None = None,
        due_after: datetime | None = None,
    ) -> Result[list[dict[str, Any]]]:
        courses = await self._list_courses()
        if courses.is_error:
            return Error(courses.failure)

        collected: list[dict[str, Any]] = []
        query = self._query(
            {"due_before": due_before, "due_after": due_after, "per_page": _AGGREGATE_PER_PAGE}
        )
        for course in courses.value:
            course_id = course.get("id")
            if course_id is None:
                continue
            match await self._client.get(f"{ENDPOINT_COURSES}/{course_id}/assignments", params=query):
                case Success(value=list() as assignments):
                    for assignment in assignments:
                        if isinstance(assignment, dict):
                            collected.append({**assignment, "course": course})
                case Success():
                    logger.warning("Unexpected assignments payload for course %s", course_id)
                case Error(failure=failure):
                    logger.warning("Skipping assignments of course %s: %s", course_id, failure)
        return Success(_sort_by_due(collected))

    @staticmethod
    def _query(params: dict[str, Any]) -> dict[str, Any]:
        """Proxy query parameters: list filters use the LMS 'name[]' form."""
        query: dict[str, Any] = {}
        for name, value in params.items():
            if value is None:
                continue
            key = f"{name}[]" if isinstance(value, (list, tuple)) else name
            query[key] = _query_value(value)
        return query

    # ---- Cache management ----

    async def invalidate_cache(self, key_or_pattern: str | None = None) -> Result[int]:
        """Remove a key or glob pattern; None clears everything."""
        if key_or_pattern is None:
            entries = self._orchestrator.cache_stats().entries
            cleared = await self._orchestrator.clear_cache()
            return cleared.map(lambda _: entries)
        return await self._orchestrator.invalidate(key_or_pattern)

    async def invalidate_course(self, course_id: int | str) -> Result[int]:
        """Drop every cached resource of one course plus cross-course aggregates."""
        patterns = (
            keys.course_key(course_id),
            keys.course_assignments_key(course_id),
            f"{keys.course_assignments_key(course_id)}_*",
            f"{keys.assignment_key(course_id, '')}*",
            keys.course_modules_key(course_id),
            f"{CACHE_PREFIX_ALL_ASSIGNMENTS}*",
            f"{CACHE_PREFIX_UPCOMING_ASSIGNMENTS}*",
        )
        removed = 0
        for pattern in patterns:
            result = await self._orchestrator.invalidate(pattern)
            if result.is_error:
                return result
            removed += result.value
        return Success(removed)

    async def clear_cache(self) -> Result[None]:
        return await self._orchestrator.clear_cache()

    def get_cache_stats(self) -> CacheStats:
        return self._orchestrator.cache_stats()
