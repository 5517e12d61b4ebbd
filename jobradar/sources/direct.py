"""Direct listings on applicant-tracking-system sites (Greenhouse, Lever, ...)."""
from __future__ import annotations

from typing import Any

from jobradar.models import ApplyOption, JobPosting, SearchRequest, SearchStrategy
from jobradar.query import FormulatedQueries
from jobradar.sources.base import OrganicHit, StrategySource, items


class DirectListingSource(StrategySource):
    strategy = SearchStrategy.DIRECT_LISTING
    engine = "google"
    results_key = "organic_results"

    def query(self, queries: FormulatedQueries) -> str:
        return queries.direct

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
                    company_name=hit.displayed_link or "Direct Apply",
                    location=location,
                    description=hit.snippet,
                    via="Company Portal",
                    job_id=hit.link,
                    apply_options=(ApplyOption("Apply Direct", hit.link),),
                    discovery_method=self.strategy,
                )
            )
        return jobs
