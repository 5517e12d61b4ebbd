import json

import pytest

from jobradar.config import ConfigurationError
from jobradar.llm import strip_code_fences
from jobradar.models import JobPosting, SearchStrategy
from jobradar.scorer import (
    FALLBACK_REASON,
    LLM_CONFIG_ERROR,
    MISSING_ITEM_REASON,
    build_scoring_prompt,
    score_jobs,
)

from conftest import fake_llm


def _job(job_id: str, title: str = "Engineer") -> JobPosting:
    return JobPosting(
        title=title,
        company_name="Acme",
        location="Remote",
        description="Build things",
        via="Company Portal",
        job_id=job_id,
        discovery_method=SearchStrategy.DIRECT_LISTING,
    )


def _reply(*rankings) -> str:
    return json.dumps({
        "rankings": [{"job_id": j, "matchScore": s, "matchReason": r} for j, s, r in rankings]
    })


def test_scores_join_by_id_and_sort_descending():
    jobs = [_job("a"), _job("b"), _job("c")]
    llm = fake_llm(_reply(("a", 70, "ok"), ("b", 90, "great"), ("c", 70, "fine")))

    result = score_jobs(llm, jobs, {"summary": "Go dev"})

    assert result.is_fallback is False
    assert [(s.posting.job_id, s.score) for s in result.jobs] == [("b", 90), ("a", 70), ("c", 70)]
    assert result.jobs[0].reason == "great"


def test_missing_ranking_scores_zero_but_keeps_job():
    jobs = [_job("a"), _job("b")]
    result = score_jobs(fake_llm(_reply(("a", 55, "meh"))), jobs, None)
    by_id = {s.posting.job_id: s for s in result.jobs}
    assert by_id["b"].score == 0
    assert by_id["b"].reason == MISSING_ITEM_REASON
    assert len(result.jobs) == 2
    assert result.is_fallback is False


def test_fenced_json_is_accepted():
    reply = "```json\n" + _reply(("a", 80, "nice")) + "\n```"
    assert strip_code_fences(reply).startswith("{")
    result = score_jobs(fake_llm(reply), [_job("a")], {})
    assert result.jobs[0].score == 80


def test_unparsable_reply_falls_back_for_whole_batch():
    jobs = [_job("a"), _job("b")]
    result = score_jobs(fake_llm("Sorry, I can't help with that."), jobs, {})
    assert result.is_fallback is True
    assert [s.score for s in result.jobs] == [0, 0]
    assert all(s.reason == FALLBACK_REASON for s in result.jobs)
    assert [s.posting.job_id for s in result.jobs] == ["a", "b"]


def test_reply_without_rankings_array_falls_back():
    result = score_jobs(fake_llm('{"results": []}'), [_job("a")], {})
    assert result.is_fallback is True


def test_oracle_exception_falls_back():
    llm = fake_llm(RuntimeError("rate limited"))
    result = score_jobs(llm, [_job("a")], {})
    assert result.is_fallback is True
    assert result.jobs[0].score == 0


def test_missing_llm_is_configuration_error():
    with pytest.raises(ConfigurationError, match=LLM_CONFIG_ERROR):
        score_jobs(None, [_job("a")], {})


def test_empty_batch_needs_no_llm():
    empty = score_jobs(None, [], {})
    assert empty.jobs == [] and empty.is_fallback is False


def test_scores_are_clamped_and_coerced():
    reply = _reply(("a", 140, "x"), ("b", -5, "y"), ("c", "not a number", "z"), ("d", "66.6", "w"))
    result = score_jobs(fake_llm(reply), [_job(i) for i in "abcd"], {})
    assert {s.posting.job_id: s.score for s in result.jobs} == {"a": 100, "b": 0, "c": 0, "d": 67}


def test_duplicate_identifier_in_reply_last_entry_wins():
    reply = _reply(("a", 20, "first"), ("a", 85, "second"))
    result = score_jobs(fake_llm(reply), [_job("a")], {})
    assert result.jobs[0].score == 85
    assert result.jobs[0].reason == "second"


def test_duplicate_identifier_across_postings_gets_same_annotation():
    jobs = [_job("dup", "One"), _job("dup", "Two")]
    result = score_jobs(fake_llm(_reply(("dup", 60, "shared"))), jobs, {})
    assert [s.score for s in result.jobs] == [60, 60]
    assert [s.posting.title for s in result.jobs] == ["One", "Two"]


def test_prompt_carries_profile_and_job_fields():
    prompt = build_scoring_prompt({"skills": ["Go"]}, [_job("a", "Backend Engineer")])
    assert '"skills"' in prompt
    assert '"job_id": "a"' in prompt
    assert '"title": "Backend Engineer"' in prompt
    assert '"company": "Acme"' in prompt
