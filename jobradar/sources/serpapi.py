"""SerpAPI client shared by job discovery and interview research."""
from __future__ import annotations

from typing import Any

import requests

from jobradar.config import ConfigurationError
from jobradar.log import get_logger

log = get_logger(__name__)

SEARCH_URL = "https://serpapi.com/search"

# SerpAPI reports an empty result page through the "error" field.
_EMPTY_RESULTS_MARKER = "hasn't returned any results"


class SearchApiError(RuntimeError):
    """SerpAPI rejected the call or could not be reached."""


class SerpApiClient:
    def __init__(
        self,
        api_key: str,
        timeout: float = 20.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("SERPAPI_KEY is not set")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def search(self, engine: str, query: str, **params: Any) -> dict[str, Any]:
        """Run one search; empty optional params (``tbs=""``) are dropped."""
        payload: dict[str, Any] = {"engine": engine, "q": query, "api_key": self.api_key}
        payload.update({k: v for k, v in params.items() if v not in (None, "")})

        log.debug("SerpAPI %s q=%r params=%s", engine, query, sorted(params))
        try:
            r = self.session.get(SEARCH_URL, params=payload, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except requests.RequestException as exc:
            raise SearchApiError(f"{engine} search failed: {exc}") from exc
        except ValueError as exc:
            raise SearchApiError(f"{engine} search returned invalid JSON") from exc

        if not isinstance(data, dict):
            raise SearchApiError(f"{engine} search returned {type(data).__name__}, expected object")
        error = data.get("error")
        if error and _EMPTY_RESULTS_MARKER in str(error):
            log.debug("SerpAPI %s: no results for %r", engine, query)
            return data
        if error:
            raise SearchApiError(f"{engine} search error: {error}")
        return data
