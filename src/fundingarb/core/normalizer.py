"""Funding rate normalization to an 8-hour basis.

Exchanges settle funding every 1h, 4h or 8h. Rates are rescaled linearly
(funding assumed proportional to elapsed time, no compounding) so that a
1h rate of 0.01% compares as 0.08% per 8h.
"""

from decimal import Decimal

from fundingarb.core.symbols import standardize
from fundingarb.models import NormalizedObservation, RawObservation

_BASE_INTERVAL_HOURS = Decimal("8")


def normalize(raw_rate: Decimal, interval_hours: Decimal | int) -> Decimal:
    """Rescale a per-interval funding rate to its 8h equivalent.

    A zero interval yields Decimal("0") instead of dividing by zero.
    """
    interval = Decimal(interval_hours)
    if interval == 0:
        return Decimal("0")
    return raw_rate * _BASE_INTERVAL_HOURS / interval


def normalize_observation(raw: RawObservation) -> NormalizedObservation:
    """Attach canonical symbol and 8h rate to a raw observation."""
    return NormalizedObservation(
        raw=raw,
        canonical_symbol=standardize(raw.exchange, raw.raw_symbol),
        rate_8h=normalize(raw.raw_rate, raw.interval_hours),
    )
