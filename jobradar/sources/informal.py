"""Hiring posts from people on LinkedIn, found through web search."""
from __future__ import annotations

from typing import Any

from jobradar.models import ApplyOption, JobPosting, SearchRequest, SearchStrategy
from jobradar.query import FormulatedQueries
from jobradar.sources.base import OrganicHit, StrategySource, items

NETWORK_COMPANY = "LinkedIn Network"


class InformalPostSource(StrategySource):
    strategy = SearchStrategy.INFORMAL_POST
    engine = "google"
    results_key = "organic_results"

    def query(self, queries: FormulatedQueries) -> str:
        return queries.informal

    def request_params(self, queries: FormulatedQueries, cap: int) -> dict[str, Any]:
        return {"num": cap, "tbs": queries.date_range}

    def normalize(self, raw: dict[str, Any] | None, request: SearchRequest) -> list[JobPosting]:
        location = request.locations[0] if request.locations else "Remote"
        jobs: list[JobPosting] = []
        for entry in items(raw, self.results_key):
            hit = OrganicHit.from_dict(entry)
            jobs.append(
                JobPosting(
                    title=hit.title,
                    company_name=NETWORK_COMPANY,
                    location=location,
                    description=hit.snippet,
                    via="LinkedIn Post",
                    job_id=hit.link,
                    apply_options=(ApplyOption("View Post", hit.link),),
                    discovery_method=self.strategy,
                )
            )
        return jobs
