"""Fan the formulated queries out to SerpAPI in parallel.

Every strategy runs to completion or failure; one failing never cancels the
others, and there are no retries here. Outcomes come back in source order
regardless of which call finished first.
"""
from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol

from jobradar.log import get_logger
from jobradar.models import StrategyOutcome
from jobradar.query import FormulatedQueries
from jobradar.sources.base import StrategySource

log = get_logger(__name__)


class SearchClient(Protocol):
    def search(self, engine: str, query: str, **params: Any) -> dict[str, Any]: ...


def _run_strategy(
    client: SearchClient,
    source: StrategySource,
    queries: FormulatedQueries,
    cap: int,
) -> dict[str, Any]:
    query = source.query(queries)
    params = source.request_params(queries, cap)
    log.debug("[%s] %s q=%r", source.name, source.engine, query)
    return client.search(source.engine, query, **params)


def dispatch(
    client: SearchClient,
    sources: list[StrategySource],
    queries: FormulatedQueries,
    cap: int = 5,
) -> list[StrategyOutcome]:
    if not sources:
        return []

    log.info("Dispatching %d search strategies in parallel...", len(sources))
    with ThreadPoolExecutor(max_workers=len(sources)) as pool:
        futures: list[Future] = [
            pool.submit(_run_strategy, client, src, queries, cap) for src in sources
        ]
        outcomes: list[StrategyOutcome] = []
        for src, future in zip(sources, futures):
            try:
                raw = future.result()
            except Exception as exc:
                log.error("[%s] FAILED: %s", src.name, exc)
                outcomes.append(StrategyOutcome(src.strategy, error=str(exc) or type(exc).__name__))
                continue
            log.info("[%s] returned %d results", src.name, src.count(raw))
            outcomes.append(StrategyOutcome(src.strategy, raw=raw))
    return outcomes
