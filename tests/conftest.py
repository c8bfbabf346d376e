"""Shared test fixtures for the funding spread scanner."""

from decimal import Decimal
from typing import Any

import pytest

from fundingarb.config import AlertSettings, AppSettings, DigestSettings, StoreSettings, TelegramSettings
from fundingarb.exchange.base import ExchangeAdapter
from fundingarb.models import Exchange, RawObservation


class FakeClock:
    """Controllable replacement for time.time (seconds)."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticAdapter(ExchangeAdapter):
    """Adapter serving a fixed list of (raw_symbol, raw_rate, interval_hours)."""

    def __init__(self, exchange: Exchange, quotes: list[tuple[str, str, str]]) -> None:
        self.exchange = exchange  # type: ignore[misc]
        self.quotes = quotes
        self.fetch_count = 0
        self.closed = False

    async def fetch_payload(self) -> Any:
        self.fetch_count += 1
        return self.quotes

    def parse(self, payload: Any, now_ms: int) -> list[RawObservation]:
        return [
            self._observation(symbol, Decimal(rate), Decimal(interval), None)
            for symbol, rate, interval in payload
        ]

    async def close(self) -> None:
        self.closed = True


class FailingAdapter(StaticAdapter):
    """Adapter whose retrieval always raises."""

    def __init__(self, exchange: Exchange) -> None:
        super().__init__(exchange, [])

    async def fetch_payload(self) -> Any:
        self.fetch_count += 1
        raise ConnectionError(f"{self.exchange.value} unreachable")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def static_adapter() -> type[StaticAdapter]:
    return StaticAdapter


@pytest.fixture
def failing_adapter() -> type[FailingAdapter]:
    return FailingAdapter


@pytest.fixture
def alert_settings() -> AlertSettings:
    """Default throttle parameters: 10% threshold, 1h window, 2% escalation."""
    return AlertSettings(
        enabled=True,
        threshold=Decimal("10.0"),
        window_ms=3_600_000,
        escalation_delta=Decimal("2.0"),
        state_ttl_seconds=86400,
    )


@pytest.fixture
def mock_settings(alert_settings: AlertSettings) -> AppSettings:
    """Return AppSettings with test defaults (memory store, no Telegram)."""
    return AppSettings(
        log_level="DEBUG",
        alerts=alert_settings,
        telegram=TelegramSettings(bot_token="", chat_ids=""),  # type: ignore[arg-type]
        store=StoreSettings(backend="memory"),
        digest=DigestSettings(enabled=False),
    )
