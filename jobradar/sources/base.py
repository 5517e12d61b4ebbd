from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from jobradar.models import ApplyOption, JobExtensions, JobPosting, SearchRequest, SearchStrategy
from jobradar.query import FormulatedQueries


def text(value: Any, default: str = "") -> str:
    """Coerce an upstream field to a stripped string, or *default*."""
    if value is None or isinstance(value, (dict, list)):
        return default
    s = str(value).strip()
    return s or default


def items(raw: dict[str, Any] | None, key: str) -> list[dict[str, Any]]:
    """The list under *key*, keeping only dict entries."""
    if not isinstance(raw, dict):
        return []
    value = raw.get(key)
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


@dataclass(frozen=True)
class OrganicHit:
    """One ``organic_results`` entry of a web search."""

    title: str
    link: str
    snippet: str
    displayed_link: str

    @classmethod
    def from_dict(cls, hit: dict[str, Any]) -> "OrganicHit":
        return cls(
            title=text(hit.get("title")),
            link=text(hit.get("link")),
            snippet=text(hit.get("snippet")),
            displayed_link=text(hit.get("displayed_link")),
        )


@dataclass(frozen=True)
class JobsHit:
    """One ``jobs_results`` entry of a Google Jobs search."""

    title: str
    company_name: str
    location: str
    description: str
    via: str
    job_id: str
    extensions: JobExtensions
    apply_options: tuple[ApplyOption, ...]

    @classmethod
    def from_dict(cls, hit: dict[str, Any]) -> "JobsHit":
        ext = hit.get("detected_extensions")
        ext = ext if isinstance(ext, dict) else {}
        options = tuple(
            ApplyOption(title=text(o.get("title"), "Apply"), link=text(o.get("link")))
            for o in items(hit, "apply_options")
            if text(o.get("link"))
        )
        return cls(
            title=text(hit.get("title")),
            company_name=text(hit.get("company_name")),
            location=text(hit.get("location")),
            description=text(hit.get("description")),
            via=text(hit.get("via")),
            job_id=text(hit.get("job_id")),
            extensions=JobExtensions(
                posted_at=text(ext.get("posted_at")) or None,
                schedule_type=text(ext.get("schedule_type")) or None,
                salary=text(ext.get("salary")) or None,
            ),
            apply_options=options,
        )


class StrategySource(ABC):
    """One discovery strategy: what to ask SerpAPI and how to read the answer."""

    strategy: SearchStrategy
    engine: str
    results_key: str

    @abstractmethod
    def query(self, queries: FormulatedQueries) -> str:
        pass

    @abstractmethod
    def request_params(self, queries: FormulatedQueries, cap: int) -> dict[str, Any]:
        pass

    @abstractmethod
    def normalize(self, raw: dict[str, Any] | None, request: SearchRequest) -> list[JobPosting]:
        pass

    def count(self, raw: dict[str, Any] | None) -> int:
        return len(items(raw, self.results_key))

    @property
    def name(self) -> str:
        return self.strategy.tag
