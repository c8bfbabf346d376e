"""Shared data models for the funding spread scanner.

CRITICAL: All rates, spreads and APRs use Decimal. Never use float for rate math.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class Exchange(str, Enum):
    """Exchanges with a funding-rate adapter and a symbol rule."""

    BINANCE = "Binance"
    BYBIT = "Bybit"
    BITGET = "Bitget"
    GATE = "Gate"
    OKX = "OKX"
    PARADEX = "Paradex"
    HYPERLIQUID = "Hyperliquid"
    LIGHTER = "Lighter"


class AlertPriority(str, Enum):
    """Alert priority emitted by the throttle."""

    STANDARD = "STANDARD"
    HIGH = "HIGH"


@dataclass(frozen=True)
class RawObservation:
    """One funding-rate quote as reported by an exchange, before normalization."""

    exchange: Exchange
    raw_symbol: str
    raw_rate: Decimal  # per funding interval, as a fraction (0.0001 = 0.01%)
    interval_hours: Decimal
    next_funding_time: int | None = None  # Unix milliseconds


@dataclass(frozen=True)
class NormalizedObservation:
    """A raw observation with its canonical symbol and 8h-equivalent rate.

    ``canonical_symbol`` is None when the exchange symbol does not match the
    exchange's quote-asset pattern; such observations are dropped before grouping.
    """

    raw: RawObservation
    canonical_symbol: str | None
    rate_8h: Decimal

    @property
    def exchange(self) -> Exchange:
        return self.raw.exchange

    @property
    def raw_rate(self) -> Decimal:
        return self.raw.raw_rate

    @property
    def interval_hours(self) -> Decimal:
        return self.raw.interval_hours

    @property
    def next_funding_time(self) -> int | None:
        return self.raw.next_funding_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "exchange": self.exchange.value,
            "rate_8h": str(self.rate_8h),
            "raw_rate": str(self.raw_rate),
            "interval_hours": str(self.interval_hours),
            "next_funding_time": self.next_funding_time,
        }


@dataclass(frozen=True)
class OpportunityRecord:
    """Cross-exchange spread for one canonical symbol.

    Built fresh every poll cycle from a group of at least two observations.
    """

    symbol: str
    max_observation: NormalizedObservation
    min_observation: NormalizedObservation
    delta_spread_8h: Decimal  # percent, always >= 0
    net_apr: Decimal  # percent, non-compounding
    recommendation: str
    observations: tuple[NormalizedObservation, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict (Decimals rendered as strings)."""
        mx = self.max_observation
        mn = self.min_observation
        return {
            "symbol": self.symbol,
            "max_exchange": mx.exchange.value,
            "max_rate_8h": str(mx.rate_8h),
            "max_raw_rate": str(mx.raw_rate),
            "max_interval_hours": str(mx.interval_hours),
            "min_exchange": mn.exchange.value,
            "min_rate_8h": str(mn.rate_8h),
            "min_raw_rate": str(mn.raw_rate),
            "min_interval_hours": str(mn.interval_hours),
            "delta_spread_8h": str(self.delta_spread_8h),
            "net_apr": str(self.net_apr),
            "recommendation": self.recommendation,
            "exchanges": [obs.to_dict() for obs in self.observations],
        }


@dataclass(frozen=True)
class AlertState:
    """Persisted throttle state for one symbol."""

    timestamp: int  # Unix milliseconds of the last emitted alert
    last_spread: Decimal


@dataclass(frozen=True)
class AlertLeg:
    """One side of a recommended trade, with the exchange's native rate."""

    exchange: Exchange
    raw_rate: Decimal
    interval_hours: Decimal


@dataclass(frozen=True)
class AlertNotification:
    """Payload handed to a notifier when the throttle lets an alert through."""

    symbol: str
    priority: AlertPriority
    spread: Decimal
    recommendation: str
    long_leg: AlertLeg
    short_leg: AlertLeg
