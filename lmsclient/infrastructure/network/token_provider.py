"""Token provider protocol (pull model) and simple implementations.

The client asks the provider for a token on every request and never
stores it. Secure credential storage lives outside this package.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from pydantic import SecretStr

from lmsclient.domain.result import Result, Success, try_call_async


class TokenProvider(Protocol):
    """Source of the proxy bearer token."""

    async def get_token(self) -> Result[str | None]:
        """Return the current token, Success(None) when signed out."""
        ...


class StaticTokenProvider:
    """Fixed token (e.g. from settings); None means unauthenticated."""

    def __init__(self, token: SecretStr | str | None = None) -> None:
        if isinstance(token, str):
            token = SecretStr(token)
        self._token = token

    async def get_token(self) -> Result[str | None]:
        if self._token is None:
            return Success(None)
        return Success(self._token.get_secret_value())


class CallableTokenProvider:
    """Adapts an async callable (e.g. a keychain lookup) that may raise."""

    def __init__(self, fetch: Callable[[], Awaitable[str | None]]) -> None:
        self._fetch = fetch

    async def get_token(self) -> Result[str | None]:
        return await try_call_async(self._fetch)
