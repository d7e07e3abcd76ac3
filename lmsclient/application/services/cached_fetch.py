"""Cached fetch orchestration: one cache policy applied to one network call.

The orchestrator holds no state of its own besides the injected store.
Each fetch evaluates the policy strategy:

- cache_only: store only; a miss or expired entry is CacheFailure.not_found.
- network_only: network only; the cache is neither read nor written.
- cache_first: store hit wins; otherwise network, then write with policy ttl.
- network_first: network, then write-through; on failure fall back to the
  cached value (expired or not) when the policy allows stale data.

force_refresh turns cache_first and cache_only into network_only for that
call. Cache write failures are logged and never fail a fetch.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from lmsclient.domain.failures import CacheFailure
from lmsclient.domain.policies import CachePolicy
from lmsclient.domain.result import Error, Result, Success
from lmsclient.infrastructure.cache.cache_protocol import CacheStoreProtocol
from lmsclient.infrastructure.cache.stats import CacheStats
from lmsclient.shared.enums import CacheStrategy, DataSource, FailureCode
from lmsclient.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_GLOB_CHARS = ("*", "?", "[")


@dataclass(frozen=True)
class FetchedValue(Generic[T]):
    """A fetched value and where it came from."""

    value: T
    source: DataSource

    @property
    def is_stale(self) -> bool:
        return self.source is DataSource.STALE_CACHE


def _identity(value: Any) -> Any:
    return value


class CachedFetchOrchestrator:
    """Applies a CachePolicy around a network call using an injected store."""

    def __init__(self, store: CacheStoreProtocol) -> None:
        self._store = store

    @property
    def store(self) -> CacheStoreProtocol:
        return self._store

    async def fetch(
        self,
        resource_key: str,
        policy: CachePolicy,
        network_call: Callable[[], Awaitable[Result[T]]],
        force_refresh: bool = False,
        serialize: Callable[[T], Any] | None = None,
        deserialize: Callable[[Any], T] | None = None,
    ) -> Result[T]:
        """Fetch resource_key under policy.

        Args:
            resource_key: Cache key of the resource.
            policy: Strategy, TTL and stale allowance for the resource class.
            network_call: Zero-argument coroutine function returning a Result.
            force_refresh: Skip the cache for cache_first/cache_only.
            serialize: Converts a network value into a JSON payload for the store.
            deserialize: Converts a stored payload back into the caller's type.

        Returns:
            Success(value) or the Failure decided by the strategy.
        """
        detailed = await self.fetch_detailed(
            resource_key,
            policy,
            network_call,
            force_refresh=force_refresh,
            serialize=serialize,
            deserialize=deserialize,
        )
        return detailed.map(lambda fetched: fetched.value)

    async def fetch_detailed(
        self,
        resource_key: str,
        policy: CachePolicy,
        network_call: Callable[[], Awaitable[Result[T]]],
        force_refresh: bool = False,
        serialize: Callable[[T], Any] | None = None,
        deserialize: Callable[[Any], T] | None = None,
    ) -> Result[FetchedValue[T]]:
        """Same as fetch() but reports the DataSource of the value."""
        to_payload = serialize or _identity
        from_payload = deserialize or _identity
        strategy = policy.strategy
        if force_refresh and policy.reads_cache:
            logger.debug("Force refresh: %s", resource_key)
            strategy = CacheStrategy.NETWORK_ONLY

        match strategy:
            case CacheStrategy.CACHE_ONLY:
                return await self._cache_only(resource_key, from_payload)
            case CacheStrategy.NETWORK_ONLY:
                return (await network_call()).map(
                    lambda value: FetchedValue(value, DataSource.NETWORK)
                )
            case CacheStrategy.CACHE_FIRST:
                return await self._cache_first(
                    resource_key, policy, network_call, to_payload, from_payload
                )
            case CacheStrategy.NETWORK_FIRST:
                return await self._network_first(
                    resource_key, policy, network_call, to_payload, from_payload
                )
        raise ValueError(f"Unsupported cache strategy: {strategy!r}")

    # ---- Strategies ----

    async def _cache_only(
        self, key: str, from_payload: Callable[[Any], T]
    ) -> Result[FetchedValue[T]]:
        match await self._store.get(key):
            case Success(value=None):
                return Error(CacheFailure.not_found(key))
            case Success(value=payload):
                decoded = self._decode(key, payload, from_payload)
                if decoded.is_error:
                    return Error(decoded.failure)
                return Success(FetchedValue(decoded.value, DataSource.CACHE))
            case Error(failure=failure) if failure.code == FailureCode.CACHE_EXPIRED.value:
                return Error(CacheFailure.not_found(key))
            case Error(failure=failure):
                return Error(failure)

    async def _cache_first(
        self,
        key: str,
        policy: CachePolicy,
        network_call: Callable[[], Awaitable[Result[T]]],
        to_payload: Callable[[T], Any],
        from_payload: Callable[[Any], T],
    ) -> Result[FetchedValue[T]]:
        match await self._store.get(key):
            case Success(value=None):
                pass
            case Success(value=payload):
                decoded = self._decode(key, payload, from_payload)
                if decoded.is_success:
                    return Success(FetchedValue(decoded.value, DataSource.CACHE))
                await self._store.remove(key)
            case Error(failure=failure) if failure.code != FailureCode.CACHE_EXPIRED.value:
                logger.warning("Cache read failed for %s, using network: %s", key, failure)

        network_result = await network_call()
        if network_result.is_success:
            await self._write(key, network_result.value, policy, to_payload)
        return network_result.map(lambda value: FetchedValue(value, DataSource.NETWORK))

    async def _network_first(
        self,
        key: str,
        policy: CachePolicy,
        network_call: Callable[[], Awaitable[Result[T]]],
        to_payload: Callable[[T], Any],
        from_payload: Callable[[Any], T],
    ) -> Result[FetchedValue[T]]:
        network_result = await network_call()
        if network_result.is_success:
            await self._write(key, network_result.value, policy, to_payload)
            return Success(FetchedValue(network_result.value, DataSource.NETWORK))
        if not policy.allow_stale:
            return network_result

        stale = await self._store.get_stale(key)
        if stale.is_success and stale.value is not None:
            decoded = self._decode(key, stale.value, from_payload)
            if decoded.is_success:
                logger.warning(
                    "Network failed for %s, serving stale cache: %s", key, network_result.failure
                )
                return Success(FetchedValue(decoded.value, DataSource.STALE_CACHE))
        return network_result

    # ---- Helpers ----

    def _decode(self, key: str, payload: Any, from_payload: Callable[[Any], T]) -> Result[T]:
        try:
            return Success(from_payload(payload))
        except (TypeError, ValueError, KeyError) as e:
            logger.warning("Discarding undecodable cache entry %s: %s", key, e)
            return Error(CacheFailure.corrupted_data(str(e)))

    async def _write(
        self, key: str, value: T, policy: CachePolicy, to_payload: Callable[[T], Any]
    ) -> None:
        if value is None:
            return
        try:
            payload = to_payload(value)
        except (TypeError, ValueError) as e:
            logger.warning("Not caching %s: payload conversion failed: %s", key, e)
            return
        put_result = await self._store.put(key, payload, ttl=policy.ttl)
        if put_result.is_error:
            logger.warning("Cache write failed for %s: %s", key, put_result.failure)

    # ---- Cache management ----

    async def invalidate(self, key_or_pattern: str) -> Result[int]:
        """Remove one key, or every key matching a glob pattern.

        Returns:
            Success(number of keys removed); an exact key counts only when
            it was live.
        """
        if any(char in key_or_pattern for char in _GLOB_CHARS):
            return await self._store.remove_matching(key_or_pattern)
        present = await self._store.contains(key_or_pattern)
        removed = await self._store.remove(key_or_pattern)
        return removed.map(lambda _: 1 if present else 0)

    async def clear_cache(self) -> Result[None]:
        return await self._store.clear()

    def cache_stats(self) -> CacheStats:
        return self._store.stats()
