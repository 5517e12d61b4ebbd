from .base import JobsHit, OrganicHit, StrategySource
from .direct import DirectListingSource
from .informal import InformalPostSource
from .aggregator import AggregatorSweepSource
from .serpapi import SearchApiError, SerpApiClient

__all__ = [
    "StrategySource", "OrganicHit", "JobsHit",
    "DirectListingSource", "InformalPostSource", "AggregatorSweepSource",
    "SerpApiClient", "SearchApiError",
    "get_sources",
]


def get_sources() -> list[StrategySource]:
    """All discovery strategies, in merge order."""
    return [DirectListingSource(), InformalPostSource(), AggregatorSweepSource()]
