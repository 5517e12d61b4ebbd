"""
Search pipeline.

Runs: create session → discover → score → persist. Each stage after
discovery degrades on its own failure (unscored jobs, unsaved jobs) instead
of failing the search.
"""
from __future__ import annotations

from typing import Any

from jobradar.context import AppContext
from jobradar.discovery import find_jobs
from jobradar.log import get_logger
from jobradar.models import ScoredPosting, SearchOutcome, SearchRequest, SearchSession
from jobradar.scorer import LLM_CONFIG_ERROR, score_jobs
from jobradar.store import JobStore

log = get_logger(__name__)


def persist_scored(
    store: JobStore,
    user_id: str,
    scored: list[ScoredPosting],
    search_id: str | None,
) -> int:
    """Upsert each job and its match one at a time; returns how many were saved.

    Failures are logged and skipped. ``store_id`` is set on every saved job.
    """
    saved = 0
    log.info("Caching %d jobs to database...", len(scored))
    for item in scored:
        try:
            job_row_id = store.upsert_job(item.posting)
            store.upsert_match(user_id, job_row_id, item.score, item.reason, search_id)
        except Exception as exc:
            log.error("Failed to cache job %r: %s", item.posting.title, exc)
            continue
        item.store_id = job_row_id
        saved += 1
    if saved < len(scored):
        log.warning("Cached %d of %d jobs", saved, len(scored))
    return saved


def create_search(ctx: AppContext, request: SearchRequest) -> str | None:
    try:
        return ctx.store.create_search(ctx.user_id, request)
    except Exception as exc:
        log.error("Failed to create search record: %s", exc)
        return None


def run_search(
    ctx: AppContext,
    request: SearchRequest,
    profile: dict[str, Any] | None = None,
) -> SearchOutcome:
    try:
        request.validate()
    except ValueError as exc:
        return SearchOutcome(success=False, error=str(exc))

    # A missing LLM key is fatal and checked before any search call.
    if ctx.llm is None:
        log.error("GROQ_API_KEY is not set; cannot score jobs")
        return SearchOutcome(success=False, error=LLM_CONFIG_ERROR)

    search_id = create_search(ctx, request)

    discovery = find_jobs(ctx.search, request, ctx.settings)
    if not discovery.success:
        return SearchOutcome(success=False, search_id=search_id, error=discovery.error)
    if not discovery.jobs:
        return SearchOutcome(success=True, search_id=search_id, warning=discovery.warning)

    if profile is None:
        profile = load_profile(ctx)
    scoring = score_jobs(ctx.llm, discovery.jobs, profile)

    persist_scored(ctx.store, ctx.user_id, scoring.jobs, search_id)

    warning = None
    if scoring.is_fallback:
        warning = f"AI analysis failed. Showing {len(scoring.jobs)} raw results."
    log.info(
        "Search complete — found=%d, fallback=%s, session=%s",
        len(scoring.jobs), scoring.is_fallback, search_id,
    )
    return SearchOutcome(
        success=True,
        jobs=scoring.jobs,
        search_id=search_id,
        is_fallback=scoring.is_fallback,
        warning=warning,
    )


def load_profile(ctx: AppContext) -> dict[str, Any] | None:
    try:
        resume = ctx.store.latest_resume(ctx.user_id)
    except Exception as exc:
        log.error("Could not load resume profile: %s", exc)
        return None
    return resume["structured_data"] if resume else None


# ── History read path ────────────────────────────────────────────────────


def list_searches(ctx: AppContext) -> list[SearchSession]:
    return ctx.store.list_searches(ctx.user_id)


def get_search_matches(ctx: AppContext, search_id: str) -> dict[str, Any]:
    try:
        jobs = ctx.store.search_matches(ctx.user_id, search_id)
    except Exception as exc:
        log.error("Failed to fetch matches: %s", exc)
        return {"success": False, "error": str(exc)}
    return {"success": True, "jobs": jobs}


def delete_search(ctx: AppContext, search_id: str) -> dict[str, Any]:
    try:
        deleted = ctx.store.delete_search(ctx.user_id, search_id)
    except Exception as exc:
        log.error("Failed to delete search %s: %s", search_id, exc)
        return {"success": False, "error": str(exc)}
    if not deleted:
        return {"success": False, "error": "Search not found"}
    log.info("Deleted search %s", search_id)
    return {"success": True}
