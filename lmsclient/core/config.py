"""Data-layer configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Limits and the proxy URL are validated at load time.
"""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment and .env.

    All settings have defaults; validate_limits rejects values that would
    make the cache or retry loop misbehave.
    """

    # App
    app_name: str = "lmsclient"
    app_version: str = "1.0.0"
    debug: bool = False

    # Proxy
    proxy_base_url: str = "http://localhost:3000/api"
    proxy_auth_token: SecretStr | None = None
    connect_timeout_seconds: float = 10.0
    send_timeout_seconds: float = 10.0
    receive_timeout_seconds: float = 15.0
    health_timeout_seconds: float = 5.0

    # Retry
    max_retries: int = 2
    retry_base_delay_seconds: float = 2.0

    # Cache store
    cache_dir: Path = Path.home() / ".lmsclient" / "cache"
    cache_max_size_bytes: int = 50 * 1024 * 1024  # 50MB
    cache_max_entries: int = 1000
    cache_default_ttl_seconds: int = 3600
    # Single entry may use at most this share of cache_max_size_bytes.
    cache_max_entry_fraction: float = 0.1

    # Per-resource TTLs (seconds)
    cache_ttl_user: int = 900
    cache_ttl_courses: int = 3600
    cache_ttl_assignments: int = 1800
    cache_ttl_calendar: int = 900
    cache_ttl_announcements: int = 7200

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Validate proxy URL, timeouts, retry and cache limits."""
        if not self.proxy_base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"proxy_base_url must start with http:// or https://, got: {self.proxy_base_url!r}"
            )
        for name in (
            "connect_timeout_seconds",
            "send_timeout_seconds",
            "receive_timeout_seconds",
            "health_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_base_delay_seconds < 0:
            raise ValueError("retry_base_delay_seconds must be >= 0")
        if self.cache_max_size_bytes <= 0 or self.cache_max_entries <= 0:
            raise ValueError("cache_max_size_bytes and cache_max_entries must be positive")
        if not 0 < self.cache_max_entry_fraction <= 1:
            raise ValueError("cache_max_entry_fraction must be in (0, 1]")
        if self.cache_default_ttl_seconds < 0:
            raise ValueError("cache_default_ttl_seconds must be >= 0")
        return self

    @property
    def cache_default_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_default_ttl_seconds)

    @property
    def retry_base_delay(self) -> timedelta:
        return timedelta(seconds=self.retry_base_delay_seconds)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
