"""Runtime settings read from the environment.

Variables (all optional):
  NEWSBRIEF_BASE_URL    search endpoint (default: the public EMM NewsBrief portal)
  NEWSBRIEF_TIMEOUT     HTTP timeout in seconds
  NEWSBRIEF_USER_AGENT  User-Agent header sent with every request
  NEWSBRIEF_OUT_DIR     root directory for the gzip CSV files
  NEWSBRIEF_MAX_PAGES   upper bound on the page number the crawler follows
  NEWSBRIEF_LOG_LEVEL   DEBUG, INFO, WARNING, ...

A ``.env`` file at the project root is read first; it only fills variables
that are not already set in the process environment.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from newsbrief.services.crawl.errors import ConfigurationError


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
DEFAULT_BASE_URL = "https://emm.newsbrief.eu/NewsBrief/dynamic"
DEFAULT_OUT_DIR = os.path.join(PROJECT_ROOT, "data", "scraped", "newsbrief")
DEFAULT_MAX_PAGES = 500


class CrawlSettings(BaseModel):
    base_url: str = Field(DEFAULT_BASE_URL, description="Dynamic search endpoint")
    timeout: float = Field(20.0, gt=0, description="HTTP timeout in seconds")
    user_agent: str = Field("NewsBrief-Crawler/0.1", description="User-Agent header")
    out_dir: str = Field(DEFAULT_OUT_DIR, description="Output directory root")
    max_pages: int = Field(DEFAULT_MAX_PAGES, ge=1, description="Highest page number to follow")
    log_level: str = Field("INFO", description="Logging level name")


_ENV_KEYS = {
    "base_url": "NEWSBRIEF_BASE_URL",
    "timeout": "NEWSBRIEF_TIMEOUT",
    "user_agent": "NEWSBRIEF_USER_AGENT",
    "out_dir": "NEWSBRIEF_OUT_DIR",
    "max_pages": "NEWSBRIEF_MAX_PAGES",
    "log_level": "NEWSBRIEF_LOG_LEVEL",
}


def _load_env_from_file(env_path: Optional[str] = None) -> None:
    """Load KEY=value lines from a .env file if present.

    Only sets variables that aren't already present in the process environment.
    """
    env_path = env_path or os.path.join(PROJECT_ROOT, ".env")
    if not os.path.isfile(env_path):
        return
    with open(env_path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            if "=" not in s:
                continue
            key, val = s.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")
            if key and not os.environ.get(key):
                os.environ[key] = val


def load_settings(env_path: Optional[str] = None) -> CrawlSettings:
    """Build settings from the environment (and .env), applying defaults.

    Raises ConfigurationError when a variable is set to an invalid value.
    """
    _load_env_from_file(env_path)
    values = {}
    for field_name, env_key in _ENV_KEYS.items():
        raw = os.getenv(env_key)
        if raw:
            values[field_name] = raw
    try:
        return CrawlSettings(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid crawler settings: {exc}", context=values) from exc
