"""
Runtime settings.

Everything is read from environment variables once at startup:

    ENROLLDESK_API_URL       base URL of the enrollment API
    ENROLLDESK_HOME          directory for session.json and the log file
    ENROLLDESK_PAGE_SIZE     initial page size of list views
    ENROLLDESK_HTTP_TIMEOUT  optional timeout (seconds) for API calls
    ENROLLDESK_LOG_LEVEL     logging level name

Broken values never stop the console from starting; defaults are used instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_PAGE_SIZE = 10
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    api_url: str
    home: Path
    page_size: int
    http_timeout: Optional[float]
    log_level: str

    @property
    def session_path(self) -> Path:
        return self.home / "session.json"

    @property
    def log_path(self) -> Path:
        return self.home / "enrolldesk.log"


def _default_home() -> Path:
    """
    Return ~/.enrolldesk.

    A function rather than a constant so tests can point ENROLLDESK_HOME
    at a temporary directory.
    """
    return Path.home() / ".enrolldesk"


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _optional_seconds(raw: str | None) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def load_settings(env: Mapping[str, str] | None = None, api_url: str | None = None) -> Settings:
    """
    Build Settings from the environment (or an explicit mapping, for tests).

    `api_url` wins over ENROLLDESK_API_URL (used by the CLI --api-url flag).
    """
    env = os.environ if env is None else env

    url = (api_url or env.get("ENROLLDESK_API_URL") or DEFAULT_API_URL).strip().rstrip("/")
    home_raw = (env.get("ENROLLDESK_HOME") or "").strip()
    home = Path(home_raw).expanduser() if home_raw else _default_home()
    level = (env.get("ENROLLDESK_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()

    return Settings(
        api_url=url,
        home=home,
        page_size=_positive_int(env.get("ENROLLDESK_PAGE_SIZE"), DEFAULT_PAGE_SIZE),
        http_timeout=_optional_seconds(env.get("ENROLLDESK_HTTP_TIMEOUT")),
        log_level=level,
    )
