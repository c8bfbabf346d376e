"""Groups normalized observations by canonical symbol across exchanges."""

from collections.abc import Iterable

from fundingarb.models import NormalizedObservation


def group(
    observations: Iterable[NormalizedObservation],
) -> dict[str, list[NormalizedObservation]]:
    """Group observations by canonical symbol, preserving arrival order.

    Observations without a canonical symbol are discarded. Groups of any size
    are returned; single-member groups simply never become opportunities.
    The same exchange may appear more than once in a group.
    """
    groups: dict[str, list[NormalizedObservation]] = {}
    for obs in observations:
        if obs.canonical_symbol is None:
            continue
        groups.setdefault(obs.canonical_symbol, []).append(obs)
    return groups
