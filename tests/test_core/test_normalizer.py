"""Tests for 8h rate normalization."""

from decimal import Decimal

import pytest

from fundingarb.core.normalizer import normalize, normalize_observation
from fundingarb.models import Exchange, RawObservation


class TestNormalize:
    @pytest.mark.parametrize(
        "rate", [Decimal("0"), Decimal("0.0001"), Decimal("-0.00375"), Decimal("0.02")]
    )
    def test_identity_at_8h(self, rate: Decimal) -> None:
        assert normalize(rate, 8) == rate

    def test_hourly_rate_scaled_up(self) -> None:
        assert normalize(Decimal("0.01"), 1) == Decimal("0.08")

    def test_12h_rate_scaled_down(self) -> None:
        assert normalize(Decimal("0.024"), 12) == Decimal("0.016")

    def test_4h_rate_doubled(self) -> None:
        assert normalize(Decimal("0.0005"), Decimal("4")) == Decimal("0.001")

    @pytest.mark.parametrize("rate", [Decimal("0.01"), Decimal("-0.5"), Decimal("0")])
    def test_zero_interval_yields_zero(self, rate: Decimal) -> None:
        assert normalize(rate, 0) == Decimal("0")

    def test_linear_not_compounded(self) -> None:
        """Eight hourly periods of r are exactly 8r, not (1+r)^8 - 1."""
        assert normalize(Decimal("0.01"), 1) == Decimal("0.01") * 8


class TestNormalizeObservation:
    def test_attaches_symbol_and_rate(self) -> None:
        raw = RawObservation(
            exchange=Exchange.HYPERLIQUID,
            raw_symbol="ETH",
            raw_rate=Decimal("0.0000125"),
            interval_hours=Decimal("1"),
            next_funding_time=1_700_000_000_000,
        )
        obs = normalize_observation(raw)
        assert obs.canonical_symbol == "ETH-PERP"
        assert obs.rate_8h == Decimal("0.0001")
        assert obs.raw is raw
        assert obs.exchange == Exchange.HYPERLIQUID
        assert obs.next_funding_time == 1_700_000_000_000

    def test_unmatched_symbol_is_none(self) -> None:
        raw = RawObservation(
            exchange=Exchange.BINANCE,
            raw_symbol="BTCUSD_PERP",
            raw_rate=Decimal("0.0001"),
            interval_hours=Decimal("8"),
        )
        assert normalize_observation(raw).canonical_symbol is None
