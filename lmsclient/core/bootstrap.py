"""Data-layer wiring: store, client, orchestrator and service from Settings.

Single place where the components are constructed and connected (SRP).
No business logic here. Callers own the returned DataLayer and should
use it as an async context manager (or call aclose()) on shutdown.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from lmsclient.application.services.cached_fetch import CachedFetchOrchestrator
from lmsclient.application.services.lms_data_service import LmsDataService
from lmsclient.core.config import Settings, get_settings
from lmsclient.domain.policies import CachePolicies
from lmsclient.domain.result import Result
from lmsclient.infrastructure.cache.file_cache import FileCacheStore
from lmsclient.infrastructure.network.resilient_client import ResilientClient
from lmsclient.infrastructure.network.token_provider import TokenProvider
from lmsclient.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class DataLayer:
    """Connected data-layer components sharing one store and one client."""

    settings: Settings
    store: FileCacheStore
    client: ResilientClient
    orchestrator: CachedFetchOrchestrator
    service: LmsDataService

    async def initialize(self) -> Result[None]:
        return await self.store.initialize()

    async def aclose(self) -> None:
        """Close the HTTP client and drop the in-memory cache index."""
        await self.client.aclose()
        self.store.close()
        logger.info("Data layer closed")

    async def __aenter__(self) -> DataLayer:
        init = await self.initialize()
        if init.is_error:
            logger.warning("Cache unavailable at startup: %s", init.failure)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def build_data_layer(
    settings: Settings | None = None,
    token_provider: TokenProvider | None = None,
    *,
    configure_logging: bool = False,
    **client_kwargs: Any,
) -> DataLayer:
    """Build the data layer from settings.

    Args:
        settings: Settings to use; defaults to get_settings().
        token_provider: Bearer token source; defaults to settings.proxy_auth_token.
        configure_logging: Call setup_logging(settings) first (for applications
            that do not configure logging themselves).
        **client_kwargs: Passed to ResilientClient (e.g. transport, http_client, sleep).

    Returns:
        DataLayer with nothing opened yet; the cache loads on initialize()
        or on first use.
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings)
    store = FileCacheStore.from_settings(settings)
    client = ResilientClient.from_settings(settings, token_provider, **client_kwargs)
    orchestrator = CachedFetchOrchestrator(store)
    service = LmsDataService(orchestrator, client, CachePolicies.from_settings(settings))
    logger.info(
        "Data layer built: proxy=%s cache_dir=%s", settings.proxy_base_url, settings.cache_dir
    )
    return DataLayer(
        settings=settings,
        store=store,
        client=client,
        orchestrator=orchestrator,
        service=service,
    )
