"""Pytest configuration and fixtures for lmsclient.

Cache tests run against tmp_path with a controllable clock; network tests
drive ResilientClient through httpx.MockTransport with a recording sleep,
so nothing touches the real filesystem cache or network.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from lmsclient.application.services.cached_fetch import CachedFetchOrchestrator
from lmsclient.core.config import Settings, get_settings
from lmsclient.infrastructure.cache.file_cache import FileCacheStore
from lmsclient.infrastructure.network.resilient_client import ResilientClient
from lmsclient.infrastructure.network.token_provider import StaticTokenProvider

BASE_URL = "http://proxy.test/api"


class FakeClock:
    """Callable UTC clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def store(cache_dir, clock) -> FileCacheStore:
    """File cache store in a temp dir with the fake clock."""
    return FileCacheStore(cache_dir, max_size_bytes=1024 * 1024, max_entries=100, clock=clock)


@pytest.fixture
def orchestrator(store) -> CachedFetchOrchestrator:
    return CachedFetchOrchestrator(store)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(proxy_base_url=BASE_URL, cache_dir=tmp_path / "settings-cache")


@pytest.fixture
def make_client(sleep) -> Callable[..., ResilientClient]:
    """Factory: ResilientClient over a MockTransport handler, no real sleeping."""

    def _make(handler, token: str | None = "test-token", **kwargs) -> ResilientClient:
        kwargs.setdefault("sleep", sleep)
        return ResilientClient(
            BASE_URL,
            token_provider=StaticTokenProvider(token),
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return _make
