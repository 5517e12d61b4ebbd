"""Build the three discovery queries from a search request.

Each strategy's query is an ordered list of clauses. Required clauses are
always emitted (an empty role list renders as ``""``), optional clauses are
dropped when empty. Formulation never fails.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from jobradar.models import SearchFilters, SearchRequest

ATS_SITES: tuple[str, ...] = (
    "greenhouse.io",
    "lever.co",
    "ashbyhq.com",
    "workday.com",
)
SOCIAL_POSTS_SITE = "linkedin.com/posts"

DATE_RANGE_TOKENS: dict[str, str] = {
    "today": "qdr:d",
    "3days": "qdr:d3",
    "week": "qdr:w",
    "month": "qdr:m",
}


def quote(item: str) -> str:
    return f'"{item}"'


def or_literals(items: list[str]) -> str:
    """``("a" OR "b")`` for several values, ``"a"`` for one, ``""`` for none."""
    if len(items) > 1:
        return "(" + " OR ".join(quote(i) for i in items) + ")"
    return quote(items[0] if items else "")


def site_filter(sites: tuple[str, ...]) -> str:
    joined = " OR ".join(f"site:{s}" for s in sites)
    return f"({joined})" if len(sites) > 1 else joined


def date_range_token(date_posted: str | None) -> str:
    return DATE_RANGE_TOKENS.get(date_posted or "", "")


def filter_suffix(filters: SearchFilters) -> str:
    """Plain-text salary / remote / job-type tokens, each with a leading space."""
    suffix = ""
    if filters.salary_min:
        suffix += f" salary ${filters.salary_min // 1000}k+"
    if filters.remote == "remote":
        suffix += " remote"
    if filters.job_type and filters.job_type != "any":
        suffix += f" {filters.job_type}"
    return suffix


@dataclass
class _Clause:
    text: str
    required: bool


@dataclass
class QueryBuilder:
    clauses: list[_Clause] = field(default_factory=list)

    def required(self, text: str) -> "QueryBuilder":
        self.clauses.append(_Clause(text, True))
        return self

    def optional(self, text: str) -> "QueryBuilder":
        self.clauses.append(_Clause(text, False))
        return self

    def build(self) -> str:
        parts = [c.text.strip() for c in self.clauses if c.required or c.text.strip()]
        return " ".join(parts).strip()


@dataclass(frozen=True)
class FormulatedQueries:
    direct: str
    informal: str
    aggregator: str
    date_range: str
    location: str


def formulate(request: SearchRequest, default_region: str = "United States") -> FormulatedQueries:
    roles = or_literals(request.roles)
    locations = or_literals(request.locations)
    suffix = filter_suffix(request.filters)

    direct = (
        QueryBuilder()
        .required(site_filter(ATS_SITES))
        .required(roles)
        .required(locations)
        .optional(suffix)
        .build()
    )
    informal = (
        QueryBuilder()
        .required(f"site:{SOCIAL_POSTS_SITE}")
        .required(quote("hiring"))
        .required(roles)
        .required(quote(request.top_skill))
        .optional(suffix)
        .build()
    )
    aggregator = (
        QueryBuilder()
        .optional(request.roles[0] if request.roles else "")
        .optional(request.top_skill)
        .optional(suffix)
        .build()
    )

    return FormulatedQueries(
        direct=direct,
        informal=informal,
        aggregator=aggregator,
        date_range=date_range_token(request.filters.date_posted),
        location=request.locations[0] if request.locations else default_region,
    )
