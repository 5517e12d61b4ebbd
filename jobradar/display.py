"""Dashboard formatting helpers that do not touch Streamlit."""
from __future__ import annotations

import html

from jobradar.models import ScoredPosting
from jobradar.scorer import FALLBACK_REASON


def reason_block(reason: str | None, is_fallback: bool = False) -> str:
    """HTML for a match reason; the model-written text is escaped."""
    css = "match-fallback" if is_fallback else "match-reason"
    return f'<div class="{css}">{html.escape(reason or "")}</div>'


def is_fallback_batch(jobs: list[ScoredPosting]) -> bool:
    """True when every posting carries the whole-batch fallback reason."""
    return bool(jobs) and all(s.reason == FALLBACK_REASON for s in jobs)
