from __future__ import annotations

import threading
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from jobradar.config import Settings
from jobradar.context import AppContext
from jobradar.llm import LLMClient
from jobradar.store import JobStore


class FakeSearchClient:
    """Stands in for SerpApiClient; *handler* returns a dict or raises."""

    def __init__(self, handler: Callable[[str, str, dict[str, Any]], dict[str, Any]]) -> None:
        self.handler = handler
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def search(self, engine: str, query: str, **params: Any) -> dict[str, Any]:
        with self._lock:
            self.calls.append((engine, query, params))
        return self.handler(engine, query, params)


class FakeCompletions:
    def __init__(self, replies: list[Any]) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []

    def create(self, **kwargs: Any) -> Any:
        self.prompts.append(kwargs["messages"][0]["content"])
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_llm(*replies: Any) -> LLMClient:
    """A real LLMClient over a fake OpenAI client replying with *replies* in turn."""
    completions = FakeCompletions(list(replies))
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMClient("test-key", model="test-model", client=client)


def organic(*links: str) -> dict[str, Any]:
    return {
        "organic_results": [
            {"title": f"Job {i}", "link": link, "snippet": f"snippet {i}", "displayed_link": "boards.greenhouse.io"}
            for i, link in enumerate(links)
        ]
    }


def jobs_results(*ids: str) -> dict[str, Any]:
    return {
        "jobs_results": [
            {
                "title": f"Board job {i}",
                "company_name": f"Company {i}",
                "location": "Anywhere",
                "description": "Build services in Go.",
                "via": "LinkedIn",
                "job_id": job_id,
                "detected_extensions": {"posted_at": "2 days ago", "schedule_type": "Full-time"},
                "apply_options": [{"title": "Apply on LinkedIn", "link": f"https://jobs.example.com/{job_id}"}],
            }
            for i, job_id in enumerate(ids)
        ]
    }


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("jobradar.retry.time.sleep", lambda _s: None)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        serpapi_key="serp-key",
        llm_api_key="llm-key",
        db_path=tmp_path / "jobradar.db",
        resume_dir=tmp_path / "resumes",
        user_id="tester",
    )


@pytest.fixture
def store(settings: Settings) -> JobStore:
    return JobStore(settings.db_path)


@pytest.fixture
def make_ctx(settings: Settings, store: JobStore):
    def _make(search: Any = None, llm: Any = None) -> AppContext:
        return AppContext(settings=settings, store=store, search=search, llm=llm)

    return _make
