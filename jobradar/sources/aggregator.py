"""Google Jobs sweep — aggregated board listings with native job fields."""
from __future__ import annotations

from typing import Any

from jobradar.models import JobPosting, SearchRequest, SearchStrategy
from jobradar.query import FormulatedQueries
from jobradar.sources.base import JobsHit, StrategySource, items


class AggregatorSweepSource(StrategySource):
    strategy = SearchStrategy.AGGREGATOR_SWEEP
    engine = "google_jobs"
    results_key = "jobs_results"

    def query(self, queries: FormulatedQueries) -> str:
        return queries.aggregator

    def request_params(self, queries: FormulatedQueries, cap: int) -> dict[str, Any]:
        # Google Jobs has no num/tbs; location is structured, not in the query text.
        return {"location": queries.location}

    def normalize(self, raw: dict[str, Any] | None, request: SearchRequest) -> list[JobPosting]:
        jobs: list[JobPosting] = []
        for entry in items(raw, self.results_key):
            hit = JobsHit.from_dict(entry)
            jobs.append(
                JobPosting(
                    title=hit.title,
                    company_name=hit.company_name,
                    location=hit.location,
                    description=hit.description,
                    via=hit.via,
                    job_id=hit.job_id,
                    extensions=hit.extensions,
                    apply_options=hit.apply_options,
                    discovery_method=self.strategy,
                )
            )
        return jobs
