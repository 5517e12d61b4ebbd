"""Rank discovered jobs against the candidate profile with one LLM call."""
from __future__ import annotations

import json
from typing import Any

from jobradar.config import ConfigurationError
from jobradar.llm import LLMClient, LLMResponseError, parse_json_object
from jobradar.log import get_logger
from jobradar.models import JobPosting, ScoredPosting, ScoringResult

log = get_logger(__name__)

LLM_CONFIG_ERROR = "AI API key not configured"
MISSING_ITEM_REASON = "Analysis failed for this item"
FALLBACK_REASON = "AI Analysis Failed: Could not process job details. Displaying raw listing."

_DESCRIPTION_CHARS = 1500

_SCORING_PROMPT = """\
You are an expert Career Coach and Recruiter.

I will provide a User Profile and a list of Job Descriptions.
Your task is to analyze each job and determine how well it fits the user.

USER PROFILE:
{profile}

JOBS TO ANALYZE:
{jobs}

OUTPUT INSTRUCTIONS:
Return a JSON object with a "rankings" array.
Each item in "rankings" must have:
- "job_id": (string) matching the input job_id
- "matchScore": (number) 0-100. Be generous but realistic. If the role matches
  the user's title/experience, start at 70. Add points for matching skills,
  subtract for missing critical requirements.
- "matchReason": (string) A helpful, 1-2 sentence explanation. Focus on WHY it's
  a match (e.g. "Great fit for your React experience") or what's missing
  (e.g. "Requires Python which isn't in your profile").

IMPORTANT:
- If the job description is short, infer requirements based on the Job Title.
- Do not return 0 unless it's a completely irrelevant job (e.g. "Nurse" for a
  "Software Engineer").
- Return ONLY valid JSON.
"""


def build_scoring_prompt(profile: dict[str, Any] | None, jobs: list[JobPosting]) -> str:
    payload = [
        {
            "job_id": j.job_id,
            "title": j.title,
            "company": j.company_name,
            "description": j.description[:_DESCRIPTION_CHARS],
        }
        for j in jobs
    ]
    return _SCORING_PROMPT.format(
        profile=json.dumps(profile or {}, indent=2, default=str),
        jobs=json.dumps(payload, indent=2),
    )


def parse_rankings(text: str) -> list[dict[str, Any]]:
    data = parse_json_object(text)
    rankings = data.get("rankings")
    if not isinstance(rankings, list):
        raise LLMResponseError('Response has no "rankings" array')
    return [r for r in rankings if isinstance(r, dict)]


def _clamp_score(value: Any) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, score))


def index_rankings(rankings: list[dict[str, Any]]) -> dict[str, tuple[int, str]]:
    """job_id → (score, reason). A repeated job_id keeps its last entry."""
    index: dict[str, tuple[int, str]] = {}
    for r in rankings:
        job_id = r.get("job_id", r.get("id"))
        if job_id is None:
            continue
        score = _clamp_score(r.get("matchScore", r.get("score")))
        reason = str(r.get("matchReason") or r.get("reason") or "").strip()
        index[str(job_id)] = (score, reason or MISSING_ITEM_REASON)
    return index


def rank(scored: list[ScoredPosting]) -> list[ScoredPosting]:
    """Highest score first; equal scores keep their discovery order."""
    return sorted(scored, key=lambda s: -s.score)


def fallback(jobs: list[JobPosting]) -> ScoringResult:
    return ScoringResult(
        jobs=[ScoredPosting(posting=j, score=0, reason=FALLBACK_REASON) for j in jobs],
        is_fallback=True,
    )


def score_jobs(
    llm: LLMClient | None,
    jobs: list[JobPosting],
    profile: dict[str, Any] | None,
) -> ScoringResult:
    """Score *jobs* in one LLM call.

    A failed call or unusable reply degrades to :func:`fallback`; a missing
    LLM client is a configuration problem and raises ``ConfigurationError``.
    """
    if not jobs:
        return ScoringResult(jobs=[])

    if llm is None:
        raise ConfigurationError(LLM_CONFIG_ERROR)

    try:
        log.info("Analyzing %d jobs with %s...", len(jobs), llm.model)
        text = llm.complete(build_scoring_prompt(profile, jobs), max_tokens=4000)
        index = index_rankings(parse_rankings(text))
    except Exception as exc:
        log.error("AI analysis failed, falling back to raw jobs: %s", exc)
        return fallback(jobs)

    scored: list[ScoredPosting] = []
    for job in jobs:
        score, reason = index.get(job.job_id, (0, MISSING_ITEM_REASON))
        scored.append(ScoredPosting(posting=job, score=score, reason=reason))

    matched = sum(1 for j in jobs if j.job_id in index)
    if matched < len(jobs):
        log.warning("LLM ranked %d of %d jobs; the rest scored 0", matched, len(jobs))

    result = rank(scored)
    log.info("Analysis complete — top match %d%%", result[0].score)
    return ScoringResult(jobs=result)
