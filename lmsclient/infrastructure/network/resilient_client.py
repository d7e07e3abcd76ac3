"""Resilient HTTP client for the LMS proxy API.

Uses httpx.AsyncClient so calls never block the event loop. Every call
returns a Result: transport errors and HTTP statuses are classified into
Failures (see failure_mapping) and never raised to callers.

Per request:
1. Ask the token provider for a token; add "Authorization: Bearer ..." only
   when one is available.
2. Send. Timeouts, connection failures, 429 and 5xx are retryable.
3. Retry up to max_retries times, sleeping base_delay * 2**(n-1) before
   retry n (no jitter). Retry-After is reported, not obeyed.
4. Unwrap the {success, data, error} envelope of a 2xx body.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import httpx

from lmsclient.core.config import Settings
from lmsclient.core.constants import (
    AUTHORIZATION_HEADER,
    BEARER_PREFIX,
    ENDPOINT_HEALTH,
    ENVELOPE_DATA,
    ENVELOPE_ERROR,
    ENVELOPE_SUCCESS,
)
from lmsclient.domain.failures import Failure, GeneralFailure, NetworkFailure
from lmsclient.domain.result import Error, Result, Success
from lmsclient.infrastructure.network.failure_mapping import (
    failure_from_exception,
    failure_from_status,
    is_retryable_exception,
    is_retryable_status,
)
from lmsclient.infrastructure.network.token_provider import StaticTokenProvider, TokenProvider
from lmsclient.shared.enums import FailureCode
from lmsclient.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_UNREACHABLE_CODES = frozenset({FailureCode.NO_CONNECTION.value, FailureCode.TIMEOUT.value})

_DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


@dataclass(frozen=True)
class _Attempt:
    """Outcome of one send: a 2xx response, or a Failure and whether to retry."""

    response: httpx.Response | None = None
    failure: Failure | None = None
    retryable: bool = False


class ResilientClient:
    """Proxy API client with bearer auth, failure classification and bounded retry.

    Pass http_client to share a connection pool (it is not closed by
    aclose()), or transport to drive a private client in tests.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token_provider: TokenProvider | None = None,
        connect_timeout: float = 10.0,
        send_timeout: float = 10.0,
        receive_timeout: float = 15.0,
        health_timeout: float = 5.0,
        max_retries: int = 2,
        base_delay: timedelta = timedelta(seconds=2),
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Proxy API root (e.g. http://host:3000/api).
            token_provider: Queried on every request; None means unauthenticated.
            connect_timeout: Seconds to establish a connection.
            send_timeout: Seconds to write the request.
            receive_timeout: Seconds to read the response.
            health_timeout: Read/write timeout for check_connection().
            max_retries: Retries after the first attempt (0 disables retry).
            base_delay: Delay before the first retry; doubles each retry.
            http_client: Optional shared AsyncClient.
            transport: Optional transport for the private AsyncClient.
            sleep: Awaitable sleep used between attempts.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay < timedelta(0):
            raise ValueError("base_delay must not be negative")
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._token_provider: TokenProvider = token_provider or StaticTokenProvider()
        self._timeout = httpx.Timeout(
            connect=connect_timeout,
            read=receive_timeout,
            write=send_timeout,
            pool=connect_timeout,
        )
        self._health_timeout = httpx.Timeout(
            connect=connect_timeout,
            read=health_timeout,
            write=health_timeout,
            pool=connect_timeout,
        )
        self._sleep = sleep
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        token_provider: TokenProvider | None = None,
        **kwargs: Any,
    ) -> ResilientClient:
        """Build a client from proxy/retry settings.

        Falls back to settings.proxy_auth_token when no provider is given.
        """
        if token_provider is None and settings.proxy_auth_token is not None:
            token_provider = StaticTokenProvider(settings.proxy_auth_token)
        return cls(
            settings.proxy_base_url,
            token_provider=token_provider,
            connect_timeout=settings.connect_timeout_seconds,
            send_timeout=settings.send_timeout_seconds,
            receive_timeout=settings.receive_timeout_seconds,
            health_timeout=settings.health_timeout_seconds,
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay,
            **kwargs,
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the private HTTP client (a shared one is left open)."""
        if self._owns_http:
            await self._http.aclose()

    # ---- Auth ----

    async def _auth_headers(self) -> dict[str, str]:
        token_result = await self._token_provider.get_token()
        match token_result:
            case Success(value=str() as token) if token:
                return {AUTHORIZATION_HEADER: f"{BEARER_PREFIX} {token}"}
            case Error(failure=failure):
                logger.debug("Token provider failed, sending unauthenticated: %s", failure)
        return {}

    async def is_authenticated(self) -> bool:
        """True if the token provider currently yields a non-empty token."""
        token_result = await self._token_provider.get_token()
        return bool(token_result.value_or_none)

    def backoff_delay(self, retry_number: int) -> float:
        """Seconds to wait before retry n (1-based): base_delay * 2**(n-1)."""
        return self.base_delay.total_seconds() * (2 ** (retry_number - 1))

    # ---- Core request loop ----

    async def _send_once(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None,
        json: Any,
        headers: dict[str, str],
        timeout: httpx.Timeout,
    ) -> _Attempt:
        try:
            response = await self._http.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json,
                headers=headers,
                timeout=timeout,
            )
        except httpx.HTTPError as e:
            return _Attempt(
                failure=failure_from_exception(e),
                retryable=is_retryable_exception(e),
            )
        except Exception as e:
            # Request could not be built (unencodable header, non-JSON body, ...).
            logger.error("%s %s could not be sent: %s", method, path, e)
            return _Attempt(failure=GeneralFailure.unknown(f"Request failed: {e}"))
        if response.is_success:
            return _Attempt(response=response)
        return _Attempt(
            failure=failure_from_status(response),
            retryable=is_retryable_status(response.status_code),
        )

    async def _send_with_retry(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[httpx.Response]:
        request_headers = dict(headers or {})
        request_headers.update(await self._auth_headers())

        retry = 0
        while True:
            attempt = await self._send_once(
                method,
                path,
                params=params,
                json=json,
                headers=request_headers,
                timeout=self._timeout,
            )
            if attempt.response is not None:
                if retry:
                    logger.info("%s %s succeeded after %s retries", method, path, retry)
                return Success(attempt.response)
            assert attempt.failure is not None
            if not attempt.retryable or retry >= self.max_retries:
                if attempt.retryable:
                    logger.warning(
                        "%s %s failed after %s attempts: %s",
                        method,
                        path,
                        retry + 1,
                        attempt.failure,
                    )
                return Error(attempt.failure)
            retry += 1
            delay = self.backoff_delay(retry)
            logger.info(
                "Retry attempt %s/%s for %s %s in %.1fs (%s)",
                retry,
                self.max_retries,
                method,
                path,
                delay,
                attempt.failure.code,
            )
            await self._sleep(delay)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[Any]:
        """Send a request with retry and return the unwrapped envelope data.

        Args:
            method: HTTP method.
            path: Path relative to base_url (e.g. /courses).
            params: Query parameters; None values are dropped.
            json: JSON body.
            headers: Extra headers.

        Returns:
            Success(data) or Error(Failure); never raises. A request that cannot
            be built (e.g. a token httpx cannot encode) is GeneralFailure.unknown.
        """
        clean_params = _drop_none(params)
        logger.debug("%s %s", method, path)
        sent = await self._send_with_retry(
            method, path, params=clean_params, json=json, headers=headers
        )
        return sent.flat_map(_unwrap_envelope)

    async def get(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[Any]:
        return await self.request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[Any]:
        return await self.request("POST", path, params=params, json=json, headers=headers)

    async def put(
        self,
        path: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[Any]:
        return await self.request("PUT", path, params=params, json=json, headers=headers)

    async def delete(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[None]:
        result = await self.request("DELETE", path, params=params, headers=headers)
        return result.map(lambda _: None)

    async def check_connection(self) -> Result[bool]:
        """Single, short-timeout probe of the proxy health endpoint (no retry).

        Success(True) on 200, Success(False) on any other status,
        Error(no_connection) when the proxy is unreachable.
        """
        attempt = await self._send_once(
            "GET",
            ENDPOINT_HEALTH,
            params=None,
            json=None,
            headers={},
            timeout=self._health_timeout,
        )
        if attempt.response is not None:
            return Success(attempt.response.status_code == 200)
        assert attempt.failure is not None
        if attempt.failure.status_code is not None:
            logger.info("Proxy health check returned %s", attempt.failure.status_code)
            return Success(False)
        if attempt.failure.code in _UNREACHABLE_CODES:
            logger.info("Proxy unreachable: %s", attempt.failure)
            return Error(NetworkFailure.no_connection())
        return Error(attempt.failure)


def _drop_none(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if params is None:
        return None
    return {name: value for name, value in params.items() if value is not None}


def _unwrap_envelope(response: httpx.Response) -> Result[Any]:
    """Return envelope data; success: false becomes GeneralFailure.unknown(error).

    Bodies without a "success" field are returned as-is, and an empty
    body (e.g. 204) is Success(None).
    """
    if not response.content:
        return Success(None)
    try:
        body = response.json()
    except ValueError as e:
        return Error(GeneralFailure.unknown(f"Failed to process response: {e}"))
    if isinstance(body, dict) and ENVELOPE_SUCCESS in body:
        if not body[ENVELOPE_SUCCESS]:
            return Error(GeneralFailure.unknown(body.get(ENVELOPE_ERROR) or "Unknown error"))
        return Success(body.get(ENVELOPE_DATA))
    return Success(body)
