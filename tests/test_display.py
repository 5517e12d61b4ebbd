from jobradar.display import is_fallback_batch, reason_block
from jobradar.models import JobPosting, ScoredPosting, SearchStrategy
from jobradar.scorer import FALLBACK_REASON, MISSING_ITEM_REASON


def _scored(reason: str) -> ScoredPosting:
    posting = JobPosting(
        title="t", company_name="c", location="", description="", via="",
        job_id="j", discovery_method=SearchStrategy.DIRECT_LISTING,
    )
    return ScoredPosting(posting=posting, score=0, reason=reason)


def test_reason_markup_is_escaped():
    block = reason_block('<b onmouseover="alert(1)">x</b></div>')
    assert "<b" not in block
    assert "&lt;b onmouseover=&quot;alert(1)&quot;&gt;x&lt;/b&gt;&lt;/div&gt;" in block
    assert block.startswith('<div class="match-reason">')
    assert block.count("</div>") == 1


def test_reason_block_styles_fallback_and_tolerates_none():
    assert reason_block(None, is_fallback=True) == '<div class="match-fallback"></div>'


def test_fallback_batch_detected_from_reloaded_reasons():
    assert is_fallback_batch([_scored(FALLBACK_REASON), _scored(FALLBACK_REASON)]) is True
    assert is_fallback_batch([_scored(FALLBACK_REASON), _scored("Strong Go match")]) is False
    assert is_fallback_batch([_scored(MISSING_ITEM_REASON)]) is False
    assert is_fallback_batch([]) is False
