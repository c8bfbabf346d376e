"""Pure core -- symbol standardization, rate normalization, grouping, spreads and ranking."""

from fundingarb.core.aggregator import group
from fundingarb.core.normalizer import normalize, normalize_observation
from fundingarb.core.ranker import OpportunityRanker
from fundingarb.core.spread import (
    annualize,
    build_opportunities,
    calculate_delta,
    compute_opportunity,
)
from fundingarb.core.symbols import SYMBOL_RULES, SymbolRule, standardize

__all__ = [
    "OpportunityRanker",
    "SYMBOL_RULES",
    "SymbolRule",
    "annualize",
    "build_opportunities",
    "calculate_delta",
    "compute_opportunity",
    "group",
    "normalize",
    "normalize_observation",
    "standardize",
]
