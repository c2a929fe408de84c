"""
Application settings and environment configuration.

Responsibilities:
- Load configuration from environment variables and .env files.
- Provide defaults for optional settings.
- Expose typed settings (provider endpoints, thresholds, timeouts, DB URL, etc.)
  for use across provider clients, allowlist store, aggregator and API server.

Thresholds and the provider set are fixed at deploy time; nothing here is
mutable at runtime.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass

from allowgate.config.env import (
    env_csv,
    env_float,
    env_int,
    env_str,
    load_allowgate_env,
)

DEFAULT_SQLITE_PATH = "allowgate.db"

DEFAULT_ETHOS_API_BASE = "https://api.ethos.network/api/v1"
DEFAULT_NEYNAR_API_BASE = "https://api.neynar.com/v2/farcaster"
DEFAULT_NEYNAR_HUB_API_BASE = "https://hub-api.neynar.com/v1"
DEFAULT_QUOTIENT_API_BASE = "https://api.quotient.social"

DEFAULT_APP_URL = "https://invisiblelaw.geoart.studio"


@dataclass(frozen=True)
class Settings:
    """Deploy-time configuration. Build with get_settings()."""

    database_url: str

    ethos_api_base: str = DEFAULT_ETHOS_API_BASE
    ethos_client_id: str = "allowgate"
    neynar_api_base: str = DEFAULT_NEYNAR_API_BASE
    neynar_api_key: str = ""
    neynar_hub_api_base: str = DEFAULT_NEYNAR_HUB_API_BASE
    quotient_api_base: str = DEFAULT_QUOTIENT_API_BASE
    quotient_api_key: str = ""

    ethos_threshold: float = 1300
    """Ethos score range: 0-2800."""
    neynar_threshold: float = 0.7
    """Neynar user score range: 0-1."""
    quotient_threshold: float = 0.6
    """Quotient score range: 0-1."""

    farcaster_target_username: str = "geoart"
    farcaster_target_fid: int = 1419696
    x_target_username: str = "invisiblelaw"
    x_target_profile_url: str = "https://x.com/invisiblelaw"
    self_declarable_platforms: tuple[str, ...] = ("x",)
    """Platforms where a self-declared (unverified) follow is accepted."""

    provider_timeout_sec: float = 8.0
    aggregation_timeout_sec: float = 15.0

    notification_dedup_window_sec: int = 86400
    app_url: str = DEFAULT_APP_URL
    app_home_url: str = f"{DEFAULT_APP_URL}/eligibility"

    api_host: str = "0.0.0.0"
    api_port: int = 8000


def _database_url() -> str:
    """Return ALLOWGATE_DB_URL or DATABASE_URL when set; else SQLite from ALLOWGATE_DB_PATH."""
    url = env_str("ALLOWGATE_DB_URL") or env_str("DATABASE_URL")
    if url:
        return url
    path = env_str("ALLOWGATE_DB_PATH", DEFAULT_SQLITE_PATH) or DEFAULT_SQLITE_PATH
    return f"sqlite:///{path}"


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the current application settings (cached; see reset_settings_cache)."""
    load_allowgate_env()
    app_url = env_str("APP_URL", DEFAULT_APP_URL).rstrip("/")
    x_username = env_str("X_TARGET_USERNAME", "invisiblelaw")
    return Settings(
        database_url=_database_url(),
        ethos_api_base=env_str("ETHOS_API_BASE", DEFAULT_ETHOS_API_BASE).rstrip("/"),
        ethos_client_id=env_str("ETHOS_CLIENT_ID", "allowgate"),
        neynar_api_base=env_str("NEYNAR_API_BASE", DEFAULT_NEYNAR_API_BASE).rstrip("/"),
        neynar_api_key=env_str("NEYNAR_API_KEY"),
        neynar_hub_api_base=env_str("NEYNAR_HUB_API_BASE", DEFAULT_NEYNAR_HUB_API_BASE).rstrip("/"),
        quotient_api_base=env_str("QUOTIENT_API_BASE", DEFAULT_QUOTIENT_API_BASE).rstrip("/"),
        quotient_api_key=env_str("QUOTIENT_API_KEY"),
        ethos_threshold=env_float("ETHOS_THRESHOLD", 1300),
        neynar_threshold=env_float("NEYNAR_THRESHOLD", 0.7),
        quotient_threshold=env_float("QUOTIENT_THRESHOLD", 0.6),
        farcaster_target_username=env_str("FARCASTER_TARGET_USERNAME", "geoart"),
        farcaster_target_fid=env_int("FARCASTER_TARGET_FID", 1419696),
        x_target_username=x_username,
        x_target_profile_url=f"https://x.com/{x_username}",
        self_declarable_platforms=env_csv("SELF_DECLARABLE_PLATFORMS", "x"),
        provider_timeout_sec=env_float("PROVIDER_TIMEOUT_SEC", 8.0),
        aggregation_timeout_sec=env_float("AGGREGATION_TIMEOUT_SEC", 15.0),
        notification_dedup_window_sec=env_int("NOTIFICATION_DEDUP_WINDOW_SEC", 86400),
        app_url=app_url,
        app_home_url=env_str("APP_HOME_URL", f"{app_url}/eligibility"),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000),
    )


def reset_settings_cache() -> None:
    """Drop cached settings so the next get_settings() re-reads the environment. For tests."""
    get_settings.cache_clear()
