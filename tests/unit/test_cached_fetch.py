"""CachedFetchOrchestrator tests: every strategy, stale fallback and force refresh."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from lmsclient.application.services.cached_fetch import CachedFetchOrchestrator
from lmsclient.domain.failures import CacheFailure, NetworkFailure
from lmsclient.domain.policies import CachePolicy
from lmsclient.domain.result import Error, Success
from lmsclient.shared.enums import CacheStrategy, DataSource

TTL = timedelta(minutes=10)


def _policy(strategy: CacheStrategy, allow_stale: bool = False) -> CachePolicy:
    return CachePolicy(TTL, strategy, allow_stale)


def _network(result):
    """Network call mock returning result."""
    return AsyncMock(return_value=result)


class TestCacheOnly:
    @pytest.mark.asyncio
    async def test_empty_cache_is_not_found_without_network(self, orchestrator) -> None:
        call = _network(Success("fresh"))
        result = await orchestrator.fetch("k", _policy(CacheStrategy.CACHE_ONLY), call)
        assert result == Error(CacheFailure.not_found("k"))
        call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hit(self, orchestrator, store) -> None:
        await store.put("k", "cached")
        call = _network(Success("fresh"))
        result = await orchestrator.fetch_detailed("k", _policy(CacheStrategy.CACHE_ONLY), call)
        assert result.value.value == "cached"
        assert result.value.source is DataSource.CACHE
        call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_is_not_found(self, orchestrator, store, clock) -> None:
        await store.put("k", "cached", ttl=timedelta(seconds=1))
        clock.advance(seconds=2)
        call = _network(Success("fresh"))
        result = await orchestrator.fetch("k", _policy(CacheStrategy.CACHE_ONLY), call)
        assert result == Error(CacheFailure.not_found("k"))
        call.assert_not_awaited()


class TestNetworkOnly:
    @pytest.mark.asyncio
    async def test_never_touches_cache(self, orchestrator, store) -> None:
        await store.put("k", "cached")
        call = _network(Success("fresh"))
        result = await orchestrator.fetch("k", _policy(CacheStrategy.NETWORK_ONLY), call)
        assert result == Success("fresh")
        assert await store.get("k") == Success("cached")

    @pytest.mark.asyncio
    async def test_failure_propagates(self, orchestrator) -> None:
        failure = NetworkFailure.server_error(500)
        result = await orchestrator.fetch(
            "k", _policy(CacheStrategy.NETWORK_ONLY), _network(Error(failure))
        )
        assert result == Error(failure)


class TestCacheFirst:
    @pytest.mark.asyncio
    async def test_hit_skips_network(self, orchestrator, store) -> None:
        await store.put("k", {"v": 1})
        call = _network(Success({"v": 2}))
        result = await orchestrator.fetch("k", _policy(CacheStrategy.CACHE_FIRST), call)
        assert result == Success({"v": 1})
        call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_miss_fetches_and_writes_with_policy_ttl(
        self, orchestrator, store, clock
    ) -> None:
        call = _network(Success({"v": 2}))
        result = await orchestrator.fetch_detailed(
            "k", _policy(CacheStrategy.CACHE_FIRST), call
        )
        assert result.value.value == {"v": 2}
        assert result.value.source is DataSource.NETWORK
        entry = (await store.get_entry("k")).value
        assert entry.expires_at == clock.now + TTL

    @pytest.mark.asyncio
    async def test_expired_refetches(self, orchestrator, store, clock) -> None:
        await store.put("k", "old", ttl=timedelta(seconds=1))
        clock.advance(seconds=2)
        call = _network(Success("new"))
        result = await orchestrator.fetch("k", _policy(CacheStrategy.CACHE_FIRST), call)
        assert result == Success("new")
        call.assert_awaited_once()
        assert await store.get("k") == Success("new")

    @pytest.mark.asyncio
    async def test_network_failure_not_cached(self, orchestrator, store) -> None:
        failure = NetworkFailure.no_connection()
        result = await orchestrator.fetch(
            "k", _policy(CacheStrategy.CACHE_FIRST), _network(Error(failure))
        )
        assert result == Error(failure)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_cache_write_failure_does_not_fail_fetch(self, orchestrator, store) -> None:
        store.max_entry_size_bytes = 4
        call = _network(Success("a long value"))
        result = await orchestrator.fetch("k", _policy(CacheStrategy.CACHE_FIRST), call)
        assert result == Success("a long value")
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_undecodable_entry_refetched(self, orchestrator, store) -> None:
        await store.put("k", {"unexpected": True})
        call = _network(Success({"id": 3}))

        def decode(payload):
            return payload["id"]

        result = await orchestrator.fetch(
            "k",
            _policy(CacheStrategy.CACHE_FIRST),
            call,
            deserialize=decode,
        )
        assert result == Success({"id": 3})
        call.assert_awaited_once()


class TestNetworkFirst:
    @pytest.mark.asyncio
    async def test_success_writes_through(self, orchestrator, store) -> None:
        await store.put("k", "old")
        result = await orchestrator.fetch(
            "k", _policy(CacheStrategy.NETWORK_FIRST), _network(Success("new"))
        )
        assert result == Success("new")
        assert await store.get("k") == Success("new")

    @pytest.mark.asyncio
    async def test_stale_fallback_on_failure(self, orchestrator, store, clock) -> None:
        await store.put("k", {"v": "cached"}, ttl=timedelta(seconds=1))
        clock.advance(hours=3)
        call = _network(Error(NetworkFailure.timeout()))
        result = await orchestrator.fetch_detailed(
            "k", _policy(CacheStrategy.NETWORK_FIRST, allow_stale=True), call
        )
        assert result.value.value == {"v": "cached"}
        assert result.value.source is DataSource.STALE_CACHE
        assert result.value.is_stale

    @pytest.mark.asyncio
    async def test_no_stale_fallback_when_not_allowed(self, orchestrator, store) -> None:
        await store.put("k", "cached")
        failure = NetworkFailure.server_error(503)
        result = await orchestrator.fetch(
            "k", _policy(CacheStrategy.NETWORK_FIRST), _network(Error(failure))
        )
        assert result == Error(failure)

    @pytest.mark.asyncio
    async def test_stale_allowed_but_nothing_cached(self, orchestrator) -> None:
        failure = NetworkFailure.no_connection()
        result = await orchestrator.fetch(
            "k",
            _policy(CacheStrategy.NETWORK_FIRST, allow_stale=True),
            _network(Error(failure)),
        )
        assert result == Error(failure)


class TestForceRefresh:
    @pytest.mark.asyncio
    async def test_cache_first_bypasses_cache(self, orchestrator, store) -> None:
        await store.put("k", "cached")
        call = _network(Success("fresh"))
        result = await orchestrator.fetch(
            "k", _policy(CacheStrategy.CACHE_FIRST), call, force_refresh=True
        )
        assert result == Success("fresh")
        call.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cache_only_goes_to_network(self, orchestrator) -> None:
        call = _network(Success("fresh"))
        result = await orchestrator.fetch(
            "k", _policy(CacheStrategy.CACHE_ONLY), call, force_refresh=True
        )
        assert result == Success("fresh")
        call.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_policy_unchanged_after_refresh(self, orchestrator, store) -> None:
        await store.put("k", "cached")
        policy = _policy(CacheStrategy.CACHE_FIRST)
        await orchestrator.fetch("k", policy, _network(Success("fresh")), force_refresh=True)
        assert policy.strategy is CacheStrategy.CACHE_FIRST
        call = _network(Success("other"))
        assert await orchestrator.fetch("k", policy, call) == Success("cached")
        call.assert_not_awaited()


class TestSerialization:
    @pytest.mark.asyncio
    async def test_custom_codec_round_trip(self, orchestrator, store) -> None:
        policy = _policy(CacheStrategy.CACHE_FIRST)
        first = await orchestrator.fetch(
            "k",
            policy,
            _network(Success({1, 2, 3})),
            serialize=sorted,
            deserialize=set,
        )
        assert first == Success({1, 2, 3})
        assert await store.get("k") == Success([1, 2, 3])

        second = await orchestrator.fetch(
            "k", policy, _network(Success(set())), serialize=sorted, deserialize=set
        )
        assert second == Success({1, 2, 3})


class TestCacheManagement:
    @pytest.mark.asyncio
    async def test_invalidate_key(self, orchestrator, store) -> None:
        await store.put("course_1", 1)
        assert await orchestrator.invalidate("course_1") == Success(1)
        assert await orchestrator.invalidate("course_1") == Success(0)

    @pytest.mark.asyncio
    async def test_invalidate_pattern(self, orchestrator, store) -> None:
        await store.put("assignments_1", 1)
        await store.put("assignments_2", 2)
        await store.put("course_1", 3)
        assert await orchestrator.invalidate("assignments_*") == Success(2)
        assert await store.keys() == ["course_1"]

    @pytest.mark.asyncio
    async def test_clear_and_stats(self, orchestrator, store) -> None:
        await store.put("a", 1)
        assert orchestrator.cache_stats().entries == 1
        assert await orchestrator.clear_cache() == Success(None)
        assert orchestrator.cache_stats().entries == 0

    @pytest.mark.asyncio
    async def test_works_with_any_store(self) -> None:
        store = AsyncMock()
        store.get = AsyncMock(return_value=Success(None))
        store.put = AsyncMock(return_value=Success(None))
        orchestrator = CachedFetchOrchestrator(store)
        result = await orchestrator.fetch(
            "k", _policy(CacheStrategy.CACHE_FIRST), _network(Success("v"))
        )
        assert result == Success("v")
        store.put.assert_awaited_once_with("k", "v", ttl=TTL)
