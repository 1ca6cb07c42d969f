"""
Runtime configuration for the AERA engine.

Everything comes from environment variables so the same code runs on a
laptop (SQLite file) and on a server (PostgreSQL), e.g.:

    AERA_DATABASE_URL=postgresql:///aera_db
    AERA_REMOTE_API_URL=http://localhost:4000/api
"""

import os
from dataclasses import dataclass, field
from typing import Optional


DEFAULT_DATABASE_URL = "sqlite:///./aera.db"
DEFAULT_STORE_KEY = "aera_backend_db_v1"
DEFAULT_SYNC_LATENCY = 1.5       # seconds - simulated backend round trip
DEFAULT_REMOTE_TIMEOUT = 10      # seconds


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes')


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Engine settings. Defaults are read from the environment at construction."""
    database_url: str = field(default_factory=lambda: os.environ.get("AERA_DATABASE_URL", DEFAULT_DATABASE_URL))
    store_key: str = field(default_factory=lambda: os.environ.get("AERA_STORE_KEY", DEFAULT_STORE_KEY))
    sync_latency: float = field(default_factory=lambda: _env_float("AERA_SYNC_LATENCY", DEFAULT_SYNC_LATENCY))
    remote_api_url: Optional[str] = field(default_factory=lambda: os.environ.get("AERA_REMOTE_API_URL") or None)
    remote_timeout: float = field(default_factory=lambda: _env_float("AERA_REMOTE_TIMEOUT", DEFAULT_REMOTE_TIMEOUT))
    start_online: bool = field(default_factory=lambda: _env_bool("AERA_START_ONLINE", True))
    log_level: str = field(default_factory=lambda: os.environ.get("AERA_LOG_LEVEL", "INFO"))
