"""Load env configuration and optional YAML tunables."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

from jobradar.log import get_logger

log = get_logger(__name__)

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
DATA_DIR: Path = ROOT_DIR / "data"
RESUME_DIR: Path = DATA_DIR / "resumes"
ENV_PATH: Path = ROOT_DIR / ".env"

load_dotenv(ENV_PATH)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama-3.3-70b-versatile"


class ConfigurationError(RuntimeError):
    """A required credential or setting is missing."""


@dataclass(frozen=True)
class Settings:
    serpapi_key: str = ""
    llm_api_key: str = ""
    llm_base_url: str = GROQ_BASE_URL
    llm_model: str = DEFAULT_MODEL
    results_per_strategy: int = 5
    research_results: int = 5
    default_region: str = "United States"
    db_path: Path = DATA_DIR / "jobradar.db"
    resume_dir: Path = RESUME_DIR
    user_id: str = "local"
    http_timeout: float = 20.0

    def require_search(self) -> str:
        if not self.serpapi_key:
            raise ConfigurationError("SERPAPI_KEY is not set")
        return self.serpapi_key

    def require_llm(self) -> str:
        if not self.llm_api_key:
            raise ConfigurationError("GROQ_API_KEY is not set")
        return self.llm_api_key


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _load_overrides(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        log.warning("Ignoring %s: expected a mapping, got %s", path.name, type(data).__name__)
        return {}
    return data


def load_settings(
    env_getter: Callable[..., str] = get_env,
    overrides_path: Path = SETTINGS_PATH,
) -> Settings:
    """Build Settings from the environment, then apply YAML tunables.

    Secrets only ever come from the environment; ``settings.yaml`` may set
    model, caps, region, paths and the owning user id.
    """
    settings = Settings(
        serpapi_key=env_getter("SERPAPI_KEY"),
        llm_api_key=env_getter("GROQ_API_KEY"),
        llm_base_url=env_getter("LLM_BASE_URL") or GROQ_BASE_URL,
        llm_model=env_getter("GROQ_LLM_MODEL") or DEFAULT_MODEL,
        user_id=env_getter("JOBRADAR_USER") or "local",
    )

    overrides = _load_overrides(overrides_path)
    allowed = {
        "llm_model": str,
        "llm_base_url": str,
        "results_per_strategy": int,
        "research_results": int,
        "default_region": str,
        "db_path": Path,
        "resume_dir": Path,
        "user_id": str,
        "http_timeout": float,
    }
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed:
            log.warning("Unknown setting %r in %s", key, overrides_path.name)
            continue
        changes[key] = allowed[key](value)
    if changes:
        log.debug("Applied settings overrides: %s", sorted(changes))
        settings = replace(settings, **changes)
    return settings


def ensure_dirs(settings: Settings) -> None:
    for d in (Path(settings.db_path).parent, Path(settings.resume_dir)):
        d.mkdir(parents=True, exist_ok=True)
