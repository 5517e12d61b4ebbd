"""Data models for searches, postings and relevance annotations."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SearchStrategy(Enum):
    """One discovery channel; ``label`` is what gets stored as the job source."""

    DIRECT_LISTING = ("DirectListing", "Direct ATS")
    INFORMAL_POST = ("InformalPost", "Manager Post")
    AGGREGATOR_SWEEP = ("AggregatorSweep", "Standard Board")

    def __init__(self, tag: str, label: str) -> None:
        self.tag = tag
        self.label = label

    @classmethod
    def from_label(cls, label: str | None) -> "SearchStrategy":
        """Map a stored source label back to its strategy (unknown → sweep)."""
        for strategy in cls:
            if label in (strategy.label, strategy.tag):
                return strategy
        return cls.AGGREGATOR_SWEEP


@dataclass
class SearchFilters:
    date_posted: str = "any"
    job_type: str = "any"
    remote: str = "any"
    salary_min: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date_posted": self.date_posted,
            "job_type": self.job_type,
            "remote": self.remote,
            "salary_min": self.salary_min,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SearchFilters":
        data = data or {}
        salary = data.get("salary_min")
        return cls(
            date_posted=data.get("date_posted") or "any",
            job_type=data.get("job_type") or "any",
            remote=data.get("remote") or "any",
            salary_min=int(salary) if salary else None,
        )


@dataclass
class SearchRequest:
    roles: list[str]
    locations: list[str] = field(default_factory=lambda: ["Remote"])
    keywords: list[str] = field(default_factory=list)
    filters: SearchFilters = field(default_factory=SearchFilters)

    def __post_init__(self) -> None:
        self.roles = _clean(self.roles)
        self.locations = _clean(self.locations) or ["Remote"]
        self.keywords = _clean(self.keywords)

    @property
    def top_skill(self) -> str:
        return self.keywords[0] if self.keywords else ""

    def validate(self) -> None:
        if not self.roles:
            raise ValueError("At least one role is required to search")


def _clean(items: list[str] | None) -> list[str]:
    return list(dict.fromkeys(s.strip() for s in (items or []) if s and s.strip()))


@dataclass(frozen=True)
class ApplyOption:
    title: str
    link: str


@dataclass(frozen=True)
class JobExtensions:
    posted_at: str | None = None
    schedule_type: str | None = None
    salary: str | None = None


@dataclass(frozen=True)
class JobPosting:
    title: str
    company_name: str
    location: str
    description: str
    via: str
    job_id: str
    discovery_method: SearchStrategy
    extensions: JobExtensions = field(default_factory=JobExtensions)
    apply_options: tuple[ApplyOption, ...] = ()

    @property
    def persist_key(self) -> str:
        """Natural key in the jobs table: first apply link, else the external id.

        Postings reloaded from the store carry this key as their ``job_id``, so a
        board posting with an apply link comes back identified by that link.
        """
        for opt in self.apply_options:
            if opt.link:
                return opt.link
        return self.job_id


@dataclass
class ScoredPosting:
    posting: JobPosting
    score: int
    reason: str
    store_id: str | None = None


@dataclass
class StrategyOutcome:
    strategy: SearchStrategy
    raw: dict[str, Any] | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class DiscoveryResult:
    success: bool
    jobs: list[JobPosting] = field(default_factory=list)
    error: str | None = None
    warning: str | None = None
    outcomes: list[StrategyOutcome] = field(default_factory=list)


@dataclass
class ScoringResult:
    jobs: list[ScoredPosting]
    is_fallback: bool = False


@dataclass
class SearchSession:
    id: str
    user_id: str
    roles: list[str]
    locations: list[str]
    keywords: list[str]
    filters: SearchFilters
    created_at: str

    @property
    def label(self) -> str:
        return f"{', '.join(self.roles) or '—'} · {', '.join(self.locations) or '—'}"


@dataclass
class SearchOutcome:
    """What the dashboard gets back from one search run."""

    success: bool
    jobs: list[ScoredPosting] = field(default_factory=list)
    search_id: str | None = None
    is_fallback: bool = False
    warning: str | None = None
    error: str | None = None
