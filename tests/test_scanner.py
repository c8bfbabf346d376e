"""Tests for FundingScanner poll cycles.

Adapters are static fakes; the throttle runs against an in-memory store and
the notifier is an AsyncMock.
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from fundingarb.alerts.store import InMemoryAlertStore
from fundingarb.alerts.throttle import AlertThrottle
from fundingarb.config import AlertSettings, DigestSettings
from fundingarb.core.ranker import OpportunityRanker
from fundingarb.exceptions import AggregationError, NotificationError
from fundingarb.models import Exchange
from fundingarb.scanner import FundingScanner


def _adapters(static_adapter, wide: bool = False) -> list:
    """Binance/Bybit/Hyperliquid quotes for BTC, ETH and a single-venue HYPE."""
    bybit_btc = "0.2" if wide else "0.0009"
    return [
        static_adapter(Exchange.BINANCE, [("BTCUSDT", "0.0001", "8"), ("ETHUSDT", "0.0001", "8")]),
        static_adapter(Exchange.BYBIT, [("BTCUSDT", bybit_btc, "8"), ("ETHUSDT", "0.0003", "8")]),
        static_adapter(Exchange.HYPERLIQUID, [("HYPE", "0.0001", "1")]),
    ]


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_ranked_output(self, static_adapter) -> None:
        scanner = FundingScanner(_adapters(static_adapter), OpportunityRanker())
        ranked = await scanner.run_cycle()

        assert [o.symbol for o in ranked] == ["BTC-PERP", "ETH-PERP"]
        assert ranked[0].delta_spread_8h == Decimal("0.08")
        assert ranked[0].recommendation == "Long Binance / Short Bybit"
        assert scanner.get_opportunities() == ranked

    @pytest.mark.asyncio
    async def test_failing_exchange_does_not_abort(self, static_adapter, failing_adapter) -> None:
        adapters = _adapters(static_adapter) + [failing_adapter(Exchange.GATE)]
        scanner = FundingScanner(adapters, OpportunityRanker())

        ranked = await scanner.run_cycle()

        assert len(ranked) == 2
        assert all(
            obs.exchange != Exchange.GATE for opp in ranked for obs in opp.observations
        )

    @pytest.mark.asyncio
    async def test_all_exchanges_failing_gives_empty_list(self, failing_adapter) -> None:
        scanner = FundingScanner(
            [failing_adapter(Exchange.BINANCE), failing_adapter(Exchange.OKX)],
            OpportunityRanker(),
        )
        assert await scanner.run_cycle() == []

    @pytest.mark.asyncio
    async def test_every_adapter_fetched_once(self, static_adapter) -> None:
        adapters = _adapters(static_adapter)
        await FundingScanner(adapters, OpportunityRanker()).run_cycle()
        assert [a.fetch_count for a in adapters] == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_aggregation_failure(self, static_adapter, alert_settings: AlertSettings) -> None:
        ranker = MagicMock()
        ranker.rank_opportunities.side_effect = TypeError("bad comparison")
        notifier = AsyncMock()
        throttle = AlertThrottle(InMemoryAlertStore(), alert_settings)
        scanner = FundingScanner(
            _adapters(static_adapter, wide=True), ranker, throttle=throttle, notifier=notifier
        )

        with pytest.raises(AggregationError):
            await scanner.run_cycle()

        notifier.send.assert_not_called()
        assert scanner.get_opportunities() == []
        assert scanner.get_status()["last_error"] == "bad comparison"

    @pytest.mark.asyncio
    async def test_concurrent_cycles_serialized(self, static_adapter) -> None:
        scanner = FundingScanner(_adapters(static_adapter), OpportunityRanker())
        first, second = await asyncio.gather(scanner.run_cycle(), scanner.run_cycle())
        assert first == second
        assert scanner.get_status()["cycle_count"] == 2


class TestAlerts:
    @pytest.mark.asyncio
    async def test_alert_sent_then_throttled(
        self, static_adapter, alert_settings: AlertSettings, clock
    ) -> None:
        notifier = AsyncMock()
        throttle = AlertThrottle(InMemoryAlertStore(clock=clock), alert_settings, clock=clock)
        scanner = FundingScanner(
            _adapters(static_adapter, wide=True),
            OpportunityRanker(),
            throttle=throttle,
            notifier=notifier,
            clock=clock,
        )

        await scanner.run_cycle()
        assert notifier.send.await_count == 1
        message = notifier.send.await_args.args[0]
        assert "STANDARD Arbitrage Alert: BTC-PERP" in message
        assert "Long Binance / Short Bybit" in message

        clock.advance(60)
        await scanner.run_cycle()
        assert notifier.send.await_count == 1
        assert scanner.get_status()["alerts_sent"] == 1

    @pytest.mark.asyncio
    async def test_below_threshold_never_alerts(
        self, static_adapter, alert_settings: AlertSettings
    ) -> None:
        notifier = AsyncMock()
        throttle = AlertThrottle(InMemoryAlertStore(), alert_settings)
        scanner = FundingScanner(
            _adapters(static_adapter), OpportunityRanker(), throttle=throttle, notifier=notifier
        )
        await scanner.run_cycle()
        notifier.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_failure_keeps_output(
        self, static_adapter, alert_settings: AlertSettings
    ) -> None:
        notifier = AsyncMock()
        notifier.send.side_effect = NotificationError("HTTP 502")
        throttle = AlertThrottle(InMemoryAlertStore(), alert_settings)
        scanner = FundingScanner(
            _adapters(static_adapter, wide=True),
            OpportunityRanker(),
            throttle=throttle,
            notifier=notifier,
        )

        ranked = await scanner.run_cycle()

        assert ranked[0].symbol == "BTC-PERP"
        assert scanner.get_status()["alerts_sent"] == 0

    @pytest.mark.asyncio
    async def test_state_for_narrowed_spread_expires(
        self, static_adapter, alert_settings: AlertSettings, clock
    ) -> None:
        """A symbol that stops qualifying is never read again, yet its state goes."""
        store = InMemoryAlertStore(clock=clock)
        throttle = AlertThrottle(store, alert_settings, clock=clock)
        adapters = _adapters(static_adapter, wide=True)
        scanner = FundingScanner(
            adapters, OpportunityRanker(), throttle=throttle, notifier=AsyncMock(), clock=clock
        )

        await scanner.run_cycle()
        assert len(store) == 1

        adapters[1].quotes = [("BTCUSDT", "0.0009", "8"), ("ETHUSDT", "0.0003", "8")]
        clock.advance(alert_settings.state_ttl_seconds)
        await scanner.run_cycle()

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_alerts_disabled_without_throttle(self, static_adapter) -> None:
        notifier = AsyncMock()
        scanner = FundingScanner(
            _adapters(static_adapter, wide=True), OpportunityRanker(), notifier=notifier
        )
        await scanner.run_cycle()
        notifier.send.assert_not_called()
        assert scanner.get_status()["alerts_enabled"] is False


class TestDigest:
    @pytest.mark.asyncio
    async def test_sent_once_per_interval(self, static_adapter, clock) -> None:
        notifier = AsyncMock()
        scanner = FundingScanner(
            _adapters(static_adapter),
            OpportunityRanker(),
            notifier=notifier,
            digest_settings=DigestSettings(enabled=True, interval_seconds=3600, top_n=1),
            clock=clock,
        )

        await scanner.run_cycle()
        assert notifier.send.await_count == 1
        digest = notifier.send.await_args.args[0]
        assert "Funding Rate Digest" in digest
        assert "BTC-PERP" in digest
        assert "ETH-PERP" not in digest

        clock.advance(1800)
        await scanner.run_cycle()
        assert notifier.send.await_count == 1

        clock.advance(1800)
        await scanner.run_cycle()
        assert notifier.send.await_count == 2

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, static_adapter) -> None:
        notifier = AsyncMock()
        scanner = FundingScanner(_adapters(static_adapter), OpportunityRanker(), notifier=notifier)
        await scanner.run_cycle()
        notifier.send.assert_not_called()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_stop(self, static_adapter) -> None:
        adapters = _adapters(static_adapter)
        scanner = FundingScanner(adapters, OpportunityRanker(), poll_interval=3600)

        await scanner.start()
        assert scanner.get_status()["running"] is True
        await asyncio.sleep(0.05)
        await scanner.stop()

        assert scanner.get_status()["running"] is False
        assert scanner.get_status()["cycle_count"] >= 1

    @pytest.mark.asyncio
    async def test_close_closes_adapters_and_notifier(self, static_adapter) -> None:
        adapters = _adapters(static_adapter)
        notifier = AsyncMock()
        scanner = FundingScanner(adapters, OpportunityRanker(), notifier=notifier)

        await scanner.close()

        assert all(a.closed for a in adapters)
        notifier.close.assert_awaited_once()

    def test_initial_status(self, static_adapter) -> None:
        scanner = FundingScanner(_adapters(static_adapter), OpportunityRanker())
        status = scanner.get_status()
        assert status["exchanges"] == ["Binance", "Bybit", "Hyperliquid"]
        assert status["cycle_count"] == 0
        assert status["last_cycle_at"] is None
        assert status["opportunity_count"] == 0
