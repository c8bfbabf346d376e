"""Spread and APR computation for a group of same-symbol observations.

Core formula:
  delta_spread_8h = |max.rate_8h - min.rate_8h| * 100   (percent per 8h)
  net_apr = delta_spread_8h * 3 * 365                  (non-compounding)

The recommended trade is long the low-funding venue and short the
high-funding venue, collecting the rate differential.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal

from fundingarb.models import NormalizedObservation, OpportunityRecord

_PERCENT = Decimal("100")
_PERIODS_PER_DAY = Decimal("3")  # 8h periods
_DAYS_PER_YEAR = Decimal("365")

MIN_GROUP_SIZE = 2


def calculate_delta(rate_a: Decimal, rate_b: Decimal) -> Decimal:
    """Absolute percentage spread between two 8h rates (symmetric)."""
    return abs(rate_a - rate_b) * _PERCENT


def annualize(delta_spread_8h: Decimal) -> Decimal:
    """Extrapolate an 8h percentage spread to a simple annual percentage."""
    return delta_spread_8h * _PERIODS_PER_DAY * _DAYS_PER_YEAR


def compute_opportunity(
    symbol: str, observations: Sequence[NormalizedObservation]
) -> OpportunityRecord:
    """Build the opportunity record for one symbol group.

    Scans once for the highest and lowest ``rate_8h``. On ties the first
    entry in iteration order is kept.

    Raises:
        ValueError: If the group has fewer than two observations.
    """
    if len(observations) < MIN_GROUP_SIZE:
        raise ValueError(
            f"{symbol}: need at least {MIN_GROUP_SIZE} observations, "
            f"got {len(observations)}"
        )

    max_obs = observations[0]
    min_obs = observations[0]
    for obs in observations:
        if obs.rate_8h > max_obs.rate_8h:
            max_obs = obs
        if obs.rate_8h < min_obs.rate_8h:
            min_obs = obs

    delta = calculate_delta(max_obs.rate_8h, min_obs.rate_8h)

    return OpportunityRecord(
        symbol=symbol,
        max_observation=max_obs,
        min_observation=min_obs,
        delta_spread_8h=delta,
        net_apr=annualize(delta),
        recommendation=(
            f"Long {min_obs.exchange.value} / Short {max_obs.exchange.value}"
        ),
        observations=tuple(observations),
    )


def build_opportunities(
    groups: Mapping[str, Sequence[NormalizedObservation]],
) -> list[OpportunityRecord]:
    """Compute records for every group with at least two observations.

    Output follows group iteration order; ranking is a separate step.
    """
    return [
        compute_opportunity(symbol, members)
        for symbol, members in groups.items()
        if len(members) >= MIN_GROUP_SIZE
    ]
