"""Job discovery: formulate, dispatch, normalize, aggregate.

The operation only fails when credentials are missing, the request has no
role, or every strategy failed and nothing was found. Any other outcome is
a success, possibly with fewer postings and a soft warning.
"""
from __future__ import annotations

from jobradar.config import Settings
from jobradar.dispatcher import SearchClient, dispatch
from jobradar.log import get_logger
from jobradar.models import DiscoveryResult, JobPosting, SearchRequest, StrategyOutcome
from jobradar.query import formulate
from jobradar.sources import get_sources
from jobradar.sources.base import StrategySource

log = get_logger(__name__)

CONFIG_ERROR = "API configuration error"
ALL_FAILED_ERROR = "All search strategies failed. Please check API quota or try again."
NO_RESULTS_WARNING = "No jobs found. Try broader roles, fewer filters, or another location."


def aggregate(
    sources: list[StrategySource],
    outcomes: list[StrategyOutcome],
    request: SearchRequest,
) -> DiscoveryResult:
    """Merge normalized postings in source order and apply the failure policy."""
    jobs: list[JobPosting] = []
    counts: list[str] = []
    for src, outcome in zip(sources, outcomes):
        batch = src.normalize(outcome.raw, request) if outcome.succeeded else []
        jobs.extend(batch)
        counts.append(f"{src.name}: {len(batch) if outcome.succeeded else 'failed'}")

    log.info("Found %d total jobs. (%s)", len(jobs), ", ".join(counts))

    if not jobs and outcomes and all(not o.succeeded for o in outcomes):
        return DiscoveryResult(success=False, error=ALL_FAILED_ERROR, outcomes=outcomes)

    warning = NO_RESULTS_WARNING if not jobs else None
    return DiscoveryResult(success=True, jobs=jobs, warning=warning, outcomes=outcomes)


def find_jobs(
    client: SearchClient | None,
    request: SearchRequest,
    settings: Settings,
    sources: list[StrategySource] | None = None,
) -> DiscoveryResult:
    if client is None:
        log.error("SERPAPI_KEY is not set")
        return DiscoveryResult(success=False, error=CONFIG_ERROR)

    try:
        request.validate()
    except ValueError as exc:
        return DiscoveryResult(success=False, error=str(exc))

    sources = sources if sources is not None else get_sources()
    queries = formulate(request, default_region=settings.default_region)
    log.info(
        "Starting discovery: roles=%s locations=%s keywords=%s filters=%s",
        request.roles, request.locations, request.keywords, request.filters.to_dict(),
    )

    outcomes = dispatch(client, sources, queries, cap=settings.results_per_strategy)
    return aggregate(sources, outcomes, request)
