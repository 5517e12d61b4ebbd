from jobradar.models import ApplyOption, SearchRequest, SearchStrategy
from jobradar.query import formulate
from jobradar.sources import (
    AggregatorSweepSource,
    DirectListingSource,
    InformalPostSource,
    get_sources,
)

from conftest import jobs_results, organic

REQUEST = SearchRequest(roles=["Backend Engineer"], locations=["Berlin"], keywords=["Go"])


def test_sources_come_in_merge_order():
    assert [s.strategy for s in get_sources()] == [
        SearchStrategy.DIRECT_LISTING,
        SearchStrategy.INFORMAL_POST,
        SearchStrategy.AGGREGATOR_SWEEP,
    ]


def test_direct_listing_normalization():
    jobs = DirectListingSource().normalize(organic("https://boards.greenhouse.io/acme/1"), REQUEST)
    assert len(jobs) == 1
    job = jobs[0]
    assert job.company_name == "boards.greenhouse.io"
    assert job.location == "Berlin"
    assert job.via == "Company Portal"
    assert job.job_id == "https://boards.greenhouse.io/acme/1"
    assert job.apply_options == (ApplyOption("Apply Direct", "https://boards.greenhouse.io/acme/1"),)
    assert job.discovery_method is SearchStrategy.DIRECT_LISTING


def test_direct_listing_defaults_company_when_no_displayed_link():
    raw = {"organic_results": [{"title": "Engineer", "link": "https://jobs.lever.co/x"}]}
    job = DirectListingSource().normalize(raw, REQUEST)[0]
    assert job.company_name == "Direct Apply"
    assert job.description == ""


def test_informal_post_uses_network_sentinel():
    job = InformalPostSource().normalize(organic("https://linkedin.com/posts/abc"), REQUEST)[0]
    assert job.company_name == "LinkedIn Network"
    assert job.via == "LinkedIn Post"
    assert job.apply_options[0].title == "View Post"
    assert job.discovery_method is SearchStrategy.INFORMAL_POST


def test_aggregator_passthrough_keeps_native_fields():
    job = AggregatorSweepSource().normalize(jobs_results("abc123"), REQUEST)[0]
    assert job.job_id == "abc123"
    assert job.company_name == "Company 0"
    assert job.extensions.posted_at == "2 days ago"
    assert job.extensions.schedule_type == "Full-time"
    assert job.extensions.salary is None
    assert job.persist_key == "https://jobs.example.com/abc123"
    assert job.discovery_method is SearchStrategy.AGGREGATOR_SWEEP


def test_malformed_shapes_never_raise():
    bad_inputs = [
        None,
        {},
        {"organic_results": None},
        {"organic_results": "oops"},
        {"organic_results": [None, 3, "x"]},
        {"jobs_results": [{"title": None, "detected_extensions": "bad", "apply_options": [None]}]},
    ]
    for raw in bad_inputs:
        for src in get_sources():
            src.normalize(raw, REQUEST)

    job = AggregatorSweepSource().normalize(bad_inputs[-1], REQUEST)[0]
    assert job.title == ""
    assert job.apply_options == ()
    assert job.extensions.posted_at is None


def test_normalization_is_repeatable():
    raw = organic("https://a.example/1", "https://a.example/2")
    src = DirectListingSource()
    assert src.normalize(raw, REQUEST) == src.normalize(raw, REQUEST)


def test_request_params_per_strategy():
    queries = formulate(REQUEST)
    assert DirectListingSource().request_params(queries, 5) == {"num": 5, "tbs": ""}
    assert InformalPostSource().request_params(queries, 3)["num"] == 3
    assert AggregatorSweepSource().request_params(queries, 5) == {"location": "Berlin"}
