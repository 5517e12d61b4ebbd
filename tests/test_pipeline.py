import json

from jobradar.config import Settings
from jobradar.discovery import ALL_FAILED_ERROR, find_jobs
from jobradar.models import SearchRequest
from jobradar.pipeline import (
    delete_search,
    get_search_matches,
    list_searches,
    persist_scored,
    run_search,
)
from jobradar.scorer import LLM_CONFIG_ERROR, score_jobs
from jobradar.sources import SearchApiError

from conftest import FakeSearchClient, fake_llm, jobs_results, organic

REQUEST = SearchRequest(roles=["Backend Engineer"], keywords=["Go"])


def _handler(direct=None, informal=None, aggregator=None):
    def handler(engine, query, params):
        if engine == "google_jobs":
            reply = aggregator
        elif query.startswith("site:linkedin.com/posts"):
            reply = informal
        else:
            reply = direct
        if isinstance(reply, Exception):
            raise reply
        return reply or {}

    return handler


def _rankings(*pairs) -> str:
    return json.dumps({
        "rankings": [{"job_id": j, "matchScore": s, "matchReason": f"reason {j}"} for j, s in pairs]
    })


def test_run_search_scores_persists_and_records_session(make_ctx, store):
    search = FakeSearchClient(_handler(
        direct=organic("https://boards.greenhouse.io/a/1"),
        aggregator=jobs_results("g1"),
    ))
    llm = fake_llm(_rankings(("https://boards.greenhouse.io/a/1", 60), ("g1", 95)))
    ctx = make_ctx(search=search, llm=llm)

    outcome = run_search(ctx, REQUEST, profile={"summary": "Go developer"})

    assert outcome.success is True
    assert outcome.is_fallback is False
    assert outcome.warning is None
    assert [(s.posting.job_id, s.score) for s in outcome.jobs] == [
        ("g1", 95), ("https://boards.greenhouse.io/a/1", 60),
    ]
    assert all(s.store_id for s in outcome.jobs)

    [session] = list_searches(ctx)
    assert session.id == outcome.search_id
    assert session.roles == ["Backend Engineer"]
    assert session.locations == ["Remote"]

    stored = store.search_matches("tester", outcome.search_id)
    assert [(m.posting.job_id, m.score) for m in stored] == [
        ("https://jobs.example.com/g1", 95), ("https://boards.greenhouse.io/a/1", 60),
    ]


def test_run_search_without_llm_is_configuration_error(make_ctx, store):
    search = FakeSearchClient(_handler(aggregator=jobs_results("g1")))
    outcome = run_search(make_ctx(search=search), REQUEST, profile={})

    assert outcome.success is False
    assert outcome.error == LLM_CONFIG_ERROR
    assert outcome.jobs == []
    assert search.calls == []
    assert store.list_searches("tester") == []
    with store.connect() as conn:
        assert conn.execute("SELECT COUNT(*) FROM job_matches").fetchone()[0] == 0


def test_run_search_llm_failure_returns_raw_results(make_ctx):
    search = FakeSearchClient(_handler(aggregator=jobs_results("g1", "g2")))
    llm = fake_llm(RuntimeError("rate limited"))
    outcome = run_search(make_ctx(search=search, llm=llm), REQUEST, profile={})

    assert outcome.success is True
    assert outcome.is_fallback is True
    assert outcome.warning == "AI analysis failed. Showing 2 raw results."
    assert [s.score for s in outcome.jobs] == [0, 0]
    assert [s.posting.job_id for s in outcome.jobs] == ["g1", "g2"]


def test_run_search_uses_latest_resume_as_profile(make_ctx, store):
    store.save_resume("tester", "/tmp/r.txt", "r.txt", {"summary": "Distinctive Rust person"})
    llm = fake_llm(_rankings(("g1", 50)))
    search = FakeSearchClient(_handler(aggregator=jobs_results("g1")))

    run_search(make_ctx(search=search, llm=llm), REQUEST)

    assert "Distinctive Rust person" in llm._client.chat.completions.prompts[0]


def test_unsaveable_job_is_skipped_not_fatal(make_ctx, store):
    raw = jobs_results("good")
    raw["jobs_results"].append({"title": "Keyless", "company_name": "Nobody"})
    search = FakeSearchClient(_handler(aggregator=raw))

    outcome = run_search(make_ctx(search=search, llm=fake_llm("not json")), REQUEST, profile={})

    assert outcome.success is True
    assert len(outcome.jobs) == 2
    assert [s.store_id is not None for s in outcome.jobs] == [True, False]
    assert len(store.search_matches("tester", outcome.search_id)) == 1


def test_persist_scored_counts_saved_rows(store):
    search = FakeSearchClient(_handler(aggregator=jobs_results("a", "b")))

    jobs = find_jobs(search, REQUEST, Settings(serpapi_key="k")).jobs
    scored = score_jobs(fake_llm("not json"), jobs, None).jobs
    assert persist_scored(store, "tester", scored, None) == 2
    assert persist_scored(store, "tester", scored, None) == 2
    with store.connect() as conn:
        assert conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0] == 2
        assert conn.execute("SELECT COUNT(*) FROM job_matches").fetchone()[0] == 2


def test_all_strategies_failing_surfaces_error(make_ctx):
    search = FakeSearchClient(_handler(
        direct=SearchApiError("x"), informal=SearchApiError("y"), aggregator=SearchApiError("z"),
    ))
    outcome = run_search(make_ctx(search=search, llm=fake_llm("{}")), REQUEST)
    assert outcome.success is False
    assert outcome.error == ALL_FAILED_ERROR
    assert outcome.jobs == []


def test_empty_roles_fail_before_any_work(make_ctx, store):
    search = FakeSearchClient(_handler())
    outcome = run_search(make_ctx(search=search), SearchRequest(roles=[]))
    assert outcome.success is False
    assert outcome.search_id is None
    assert search.calls == []
    assert store.list_searches("tester") == []


def test_zero_results_carries_warning_and_session(make_ctx):
    outcome = run_search(make_ctx(search=FakeSearchClient(_handler()), llm=fake_llm("{}")), REQUEST)
    assert outcome.success is True
    assert outcome.jobs == []
    assert outcome.warning
    assert outcome.search_id is not None


def test_history_read_and_delete(make_ctx):
    search = FakeSearchClient(_handler(aggregator=jobs_results("g1")))
    ctx = make_ctx(search=search, llm=fake_llm(_rankings(("g1", 72))))
    outcome = run_search(ctx, REQUEST, profile={})

    result = get_search_matches(ctx, outcome.search_id)
    assert result["success"] is True
    assert [m.posting.title for m in result["jobs"]] == ["Board job 0"]

    assert delete_search(ctx, outcome.search_id) == {"success": True}
    assert delete_search(ctx, outcome.search_id) == {"success": False, "error": "Search not found"}
    assert get_search_matches(ctx, outcome.search_id) == {"success": True, "jobs": []}
