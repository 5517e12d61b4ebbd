import time

from jobradar.discovery import ALL_FAILED_ERROR, CONFIG_ERROR, NO_RESULTS_WARNING, find_jobs
from jobradar.dispatcher import dispatch
from jobradar.models import SearchFilters, SearchRequest, SearchStrategy
from jobradar.query import formulate
from jobradar.sources import SearchApiError, get_sources

from conftest import FakeSearchClient, jobs_results, organic

REQUEST = SearchRequest(roles=["Backend Engineer"], locations=["Remote"], keywords=["Go"])


def _by_strategy(direct=None, informal=None, aggregator=None):
    """Handler answering per strategy; an exception instance is raised."""
    def handler(engine, query, params):
        if engine == "google_jobs":
            reply = aggregator
        elif query.startswith("site:linkedin.com/posts"):
            reply = informal
        else:
            reply = direct
        if isinstance(reply, Exception):
            raise reply
        return reply if reply is not None else {}

    return handler


def test_example_scenario_one_strategy_down(settings):
    client = FakeSearchClient(_by_strategy(
        direct=organic("https://boards.greenhouse.io/a/1", "https://jobs.lever.co/b/2"),
        informal=SearchApiError("quota exceeded"),
        aggregator=jobs_results("g1", "g2", "g3"),
    ))

    result = find_jobs(client, REQUEST, settings)

    assert result.success is True
    assert result.error is None
    assert len(result.jobs) == 5
    assert [j.discovery_method.tag for j in result.jobs] == [
        "DirectListing", "DirectListing", "AggregatorSweep", "AggregatorSweep", "AggregatorSweep",
    ]
    assert [o.succeeded for o in result.outcomes] == [True, False, True]


def test_all_strategies_failing_is_a_failure(settings):
    client = FakeSearchClient(_by_strategy(
        direct=SearchApiError("down"),
        informal=SearchApiError("down"),
        aggregator=RuntimeError("boom"),
    ))

    result = find_jobs(client, REQUEST, settings)

    assert result.success is False
    assert result.error == ALL_FAILED_ERROR
    assert result.jobs == []


def test_two_failures_still_succeed(settings):
    client = FakeSearchClient(_by_strategy(
        direct=SearchApiError("down"),
        informal=SearchApiError("down"),
        aggregator=jobs_results("only"),
    ))
    result = find_jobs(client, REQUEST, settings)
    assert result.success is True
    assert [j.job_id for j in result.jobs] == ["only"]


def test_zero_results_is_success_with_warning(settings):
    client = FakeSearchClient(_by_strategy(direct={}, informal=SearchApiError("x"), aggregator={}))
    result = find_jobs(client, REQUEST, settings)
    assert result.success is True
    assert result.jobs == []
    assert result.warning == NO_RESULTS_WARNING


def test_missing_client_is_configuration_error(settings):
    result = find_jobs(None, REQUEST, settings)
    assert result.success is False
    assert result.error == CONFIG_ERROR


def test_request_without_roles_is_rejected(settings):
    client = FakeSearchClient(_by_strategy())
    result = find_jobs(client, SearchRequest(roles=["  "]), settings)
    assert result.success is False
    assert client.calls == []


def test_dispatch_passes_caps_dates_and_location(settings):
    client = FakeSearchClient(_by_strategy())
    request = SearchRequest(roles=["SRE"], locations=["Austin"], filters=SearchFilters(date_posted="today"))
    find_jobs(client, request, settings)

    calls = {(engine, q.startswith("site:linkedin")): params for engine, q, params in client.calls}
    assert calls[("google", False)] == {"num": settings.results_per_strategy, "tbs": "qdr:d"}
    assert calls[("google", True)] == {"num": settings.results_per_strategy, "tbs": "qdr:d"}
    assert calls[("google_jobs", False)] == {"location": "Austin"}


def test_dispatch_keeps_source_order_when_calls_finish_out_of_order():
    def handler(engine, query, params):
        if not query.startswith("site:linkedin") and engine == "google":
            time.sleep(0.05)
        return {}

    sources = get_sources()
    outcomes = dispatch(FakeSearchClient(handler), sources, formulate(REQUEST), cap=5)
    assert [o.strategy for o in outcomes] == [
        SearchStrategy.DIRECT_LISTING,
        SearchStrategy.INFORMAL_POST,
        SearchStrategy.AGGREGATOR_SWEEP,
    ]


def test_dispatch_does_not_retry_failed_strategy():
    def handler(engine, query, params):
        raise SearchApiError("nope")

    client = FakeSearchClient(handler)
    outcomes = dispatch(client, get_sources(), formulate(REQUEST))
    assert len(client.calls) == 3
    assert all(o.error == "nope" for o in outcomes)
