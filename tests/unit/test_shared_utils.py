"""Tests for UTC datetime helpers and logging setup."""

import logging
from datetime import UTC, datetime, timedelta, timezone

import pytest

from lmsclient.core.config import Settings
from lmsclient.shared.telemetry.logging import get_logger, setup_logging
from lmsclient.shared.utils.datetime import ensure_utc, parse_iso, to_iso, utc_now


class TestDatetime:
    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is UTC

    def test_ensure_utc(self) -> None:
        assert ensure_utc(None) is None
        assert ensure_utc(datetime(2025, 1, 1)) == datetime(2025, 1, 1, tzinfo=UTC)
        plus_two = datetime(2025, 1, 1, 14, tzinfo=timezone(timedelta(hours=2)))
        assert ensure_utc(plus_two) == datetime(2025, 1, 1, 12, tzinfo=UTC)

    def test_iso_round_trip(self) -> None:
        moment = datetime(2025, 1, 1, 12, 30, tzinfo=UTC)
        assert to_iso(moment) == "2025-01-01T12:30:00+00:00"
        assert parse_iso(to_iso(moment)) == moment
        assert parse_iso("2025-01-01T12:30:00Z") == moment
        assert to_iso(None) is None
        assert parse_iso(None) is None

    def test_parse_iso_errors(self) -> None:
        with pytest.raises(ValueError):
            parse_iso("not a date")
        with pytest.raises(TypeError):
            parse_iso(12)


class TestLogging:
    def test_get_logger(self) -> None:
        assert get_logger("lmsclient.test").name == "lmsclient.test"

    def test_setup_quiets_httpx_unless_debug(self) -> None:
        setup_logging(Settings(_env_file=None, debug=False))
        assert logging.getLogger("httpx").level == logging.WARNING
