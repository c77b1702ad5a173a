"""Runtime configuration for the job tracker.

Everything is read from environment variables. If a `.env` file exists
(path overridable via TRACKER_DOTENV) it is loaded first so the API, the CLI
and the scripts all see the same settings.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Union

import yaml
from dotenv import load_dotenv

_ = load_dotenv(dotenv_path=os.getenv("TRACKER_DOTENV", ".env"))


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


HTTP_TIMEOUT = _float_env("TRACKER_HTTP_TIMEOUT", 20.0)  # seconds per platform request
DEFAULT_PAGE_SIZE = _int_env("TRACKER_DEFAULT_PAGE_SIZE", 20)
MAX_PAGE_SIZE = _int_env("TRACKER_MAX_PAGE_SIZE", 100)

LINKEDIN_API_BASE = os.getenv("TRACKER_LINKEDIN_API_BASE", "https://api.linkedin.com/v2").rstrip("/")
INDEED_API_BASE = os.getenv("TRACKER_INDEED_API_BASE", "https://api.indeed.com/v2").rstrip("/")

LOG_LEVEL = os.getenv("TRACKER_LOG_LEVEL", "INFO").upper()


def database_url() -> str:
    url = (
        os.getenv("TRACKER_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or "sqlite:///./tracker.db"
    )
    # Normalize legacy PostgreSQL scheme if present
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+" not in url:
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def load_credentials_file(path: Union[str, Path]) -> dict[str, dict]:
    """Read a platform -> credentials mapping from a JSON or YAML file.

    Example (YAML):

        linkedin:
          accessToken: AQX...
          expiresAt: 1767225600000
        indeed:
          publisherId: 1234
          apiKey: abc
    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f)
    if not isinstance(data, dict):
        return {}
    return {
        str(platform).strip().lower(): payload
        for platform, payload in data.items()
        if isinstance(payload, dict)
    }
