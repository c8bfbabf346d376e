"""Opportunity ranking by 8h spread.

Python's sort is stable, so records with equal spreads keep their input
order (no secondary key such as symbol name).
"""

from collections.abc import Iterable

from fundingarb.models import OpportunityRecord


class OpportunityRanker:
    """Ranks opportunity records by ``delta_spread_8h``, widest first."""

    def rank_opportunities(
        self, opportunities: Iterable[OpportunityRecord]
    ) -> list[OpportunityRecord]:
        """Return a new list sorted by spread descending (stable)."""
        return sorted(
            opportunities,
            key=lambda o: o.delta_spread_8h,
            reverse=True,
        )

    @staticmethod
    def top(
        opportunities: list[OpportunityRecord], count: int
    ) -> list[OpportunityRecord]:
        """Return the first ``count`` records of an already ranked list."""
        return opportunities[: max(count, 0)]
