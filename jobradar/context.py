"""Process-wide handle on settings and the external-service clients.

Built once at startup and passed into every operation; nothing else in the
package creates SDK clients.
"""
from __future__ import annotations

from dataclasses import dataclass

from jobradar.config import Settings, ensure_dirs, load_settings
from jobradar.dispatcher import SearchClient
from jobradar.llm import LLMClient
from jobradar.log import get_logger
from jobradar.sources.serpapi import SerpApiClient
from jobradar.store import JobStore

log = get_logger(__name__)


@dataclass
class AppContext:
    settings: Settings
    store: JobStore
    search: SearchClient | None = None
    llm: LLMClient | None = None

    @property
    def user_id(self) -> str:
        return self.settings.user_id


def build_context(settings: Settings | None = None) -> AppContext:
    settings = settings or load_settings()
    ensure_dirs(settings)

    search = None
    if settings.serpapi_key:
        search = SerpApiClient(settings.serpapi_key, timeout=settings.http_timeout)
    else:
        log.warning("SERPAPI_KEY not set — job search and interview research are disabled")

    llm = None
    if settings.llm_api_key:
        llm = LLMClient(settings.llm_api_key, model=settings.llm_model, base_url=settings.llm_base_url)
    else:
        log.warning("GROQ_API_KEY not set — resume parsing, scoring and prep guides are disabled")

    store = JobStore(settings.db_path)
    log.info("Context ready (user=%s, db=%s)", settings.user_id, settings.db_path)
    return AppContext(settings=settings, store=store, search=search, llm=llm)
