"""Tests for component wiring in the entry point."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from fundingarb import main as main_module
from fundingarb.alerts.notifier import LogNotifier
from fundingarb.alerts.store import InMemoryAlertStore, SqliteAlertStore
from fundingarb.alerts.throttle import AlertThrottle
from fundingarb.config import AppSettings, StoreSettings
from fundingarb.exceptions import AlertStoreError
from fundingarb.main import _build_components, _close_components
from fundingarb.scanner import FundingScanner


class TestBuildComponents:
    @pytest.mark.asyncio
    async def test_memory_store_without_telegram(self, mock_settings: AppSettings) -> None:
        components = await _build_components(mock_settings)
        try:
            assert isinstance(components["store"], InMemoryAlertStore)
            assert isinstance(components["notifier"], LogNotifier)
            assert isinstance(components["throttle"], AlertThrottle)
            assert isinstance(components["scanner"], FundingScanner)
            assert len(components["adapters"]) == len(mock_settings.scanner.exchanges)
        finally:
            await _close_components(components)
        assert components["session"].closed

    @pytest.mark.asyncio
    async def test_alerts_disabled(self, mock_settings: AppSettings) -> None:
        mock_settings.alerts.enabled = False
        components = await _build_components(mock_settings)
        try:
            assert components["throttle"] is None
            assert components["scanner"].get_status()["alerts_enabled"] is False
        finally:
            await _close_components(components)

    @pytest.mark.asyncio
    async def test_sqlite_store_connected(
        self, mock_settings: AppSettings, tmp_path: Path
    ) -> None:
        mock_settings.store = StoreSettings(backend="sqlite", db_path=str(tmp_path / "a.db"))
        components = await _build_components(mock_settings)
        try:
            store = components["store"]
            assert isinstance(store, SqliteAlertStore)
            assert await store.get("alert:BTC-PERP") is None
        finally:
            await _close_components(components)


class TestBuildFailureCleanup:
    @pytest.mark.asyncio
    async def test_store_connect_failure_opens_no_session(
        self, mock_settings: AppSettings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        session_factory = MagicMock()
        monkeypatch.setattr(main_module.aiohttp, "ClientSession", session_factory)
        monkeypatch.setattr(
            SqliteAlertStore, "connect", AsyncMock(side_effect=AlertStoreError("unable to open"))
        )
        mock_settings.store = StoreSettings(backend="sqlite", db_path="unused.db")

        with pytest.raises(AlertStoreError):
            await _build_components(mock_settings)

        session_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_wiring_failure_closes_session_and_store(
        self, mock_settings: AppSettings, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        session = MagicMock()
        session.close = AsyncMock()
        monkeypatch.setattr(main_module.aiohttp, "ClientSession", MagicMock(return_value=session))
        monkeypatch.setattr(
            main_module, "build_adapters", MagicMock(side_effect=ValueError("bad exchange"))
        )
        close = AsyncMock()
        monkeypatch.setattr(SqliteAlertStore, "connect", AsyncMock())
        monkeypatch.setattr(SqliteAlertStore, "close", close)
        mock_settings.store = StoreSettings(backend="sqlite", db_path=str(tmp_path / "a.db"))

        with pytest.raises(ValueError):
            await _build_components(mock_settings)

        session.close.assert_awaited_once()
        close.assert_awaited_once()
