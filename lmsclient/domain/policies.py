"""Cache policies: per-resource-class fetch strategy and TTL.

A CachePolicy is immutable and attached to a resource class (courses,
assignments, ...), never to a single request. Per-call overrides go
through the orchestrator's force_refresh flag instead.
"""

from dataclasses import dataclass
from datetime import timedelta

from lmsclient.core.config import Settings
from lmsclient.shared.enums import CacheStrategy


@dataclass(frozen=True)
class CachePolicy:
    """Value object for cache behavior of one resource class.

    Attributes:
        ttl: Lifetime of entries written under this policy.
        strategy: Dispatch strategy evaluated by the orchestrator.
        allow_stale: With NETWORK_FIRST, serve the cached value (even
            expired) when the network call fails.
    """

    ttl: timedelta
    strategy: CacheStrategy = CacheStrategy.CACHE_FIRST
    allow_stale: bool = False

    def __post_init__(self) -> None:
        if self.ttl < timedelta(0):
            raise ValueError("CachePolicy ttl must not be negative")
        if not isinstance(self.strategy, CacheStrategy):
            object.__setattr__(self, "strategy", CacheStrategy(self.strategy))

    @property
    def reads_cache(self) -> bool:
        return self.strategy in (CacheStrategy.CACHE_FIRST, CacheStrategy.CACHE_ONLY)

    @property
    def writes_cache(self) -> bool:
        return self.strategy in (CacheStrategy.CACHE_FIRST, CacheStrategy.NETWORK_FIRST)


@dataclass(frozen=True)
class CachePolicies:
    """Named preset policies for the LMS resource classes."""

    user: CachePolicy
    courses: CachePolicy
    assignments: CachePolicy
    calendar: CachePolicy
    announcements: CachePolicy

    @classmethod
    def defaults(cls) -> "CachePolicies":
        """Presets: cache-first for slow-changing data, network-first for deadlines."""
        return cls(
            user=CachePolicy(timedelta(minutes=15), CacheStrategy.CACHE_FIRST),
            courses=CachePolicy(timedelta(hours=1), CacheStrategy.CACHE_FIRST),
            assignments=CachePolicy(timedelta(minutes=30), CacheStrategy.NETWORK_FIRST),
            calendar=CachePolicy(timedelta(minutes=15), CacheStrategy.NETWORK_FIRST),
            announcements=CachePolicy(timedelta(hours=2), CacheStrategy.CACHE_FIRST),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CachePolicies":
        """Presets with TTLs taken from settings (cache_ttl_* fields)."""
        return cls(
            user=CachePolicy(timedelta(seconds=settings.cache_ttl_user), CacheStrategy.CACHE_FIRST),
            courses=CachePolicy(
                timedelta(seconds=settings.cache_ttl_courses), CacheStrategy.CACHE_FIRST
            ),
            assignments=CachePolicy(
                timedelta(seconds=settings.cache_ttl_assignments), CacheStrategy.NETWORK_FIRST
            ),
            calendar=CachePolicy(
                timedelta(seconds=settings.cache_ttl_calendar), CacheStrategy.NETWORK_FIRST
            ),
            announcements=CachePolicy(
                timedelta(seconds=settings.cache_ttl_announcements), CacheStrategy.CACHE_FIRST
            ),
        )
