"""Configuration management via environment variables and .env file."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel


class Config(BaseModel):
    """Application configuration loaded from environment."""

    # Persisted settings (holds the Apify token) and the prospect store
    settings_file: str = "data/settings.json"
    db_path: str = ".prospect_research.db"

    # Browser automation
    browser_headless: bool = True
    navigation_timeout_ms: int = 30000
    settle_ms: int = 2000           # wait after load for dynamic content
    wait_until: str = "networkidle"
    search_result_limit: int = 5

    # Apify actor platform
    apify_base_url: str = "https://api.apify.com/v2"
    apify_timeout: int = 30         # per HTTP request
    apify_run_timeout: int = 300    # max wait for one actor run
    apify_language: str = "fr"
    apify_country: str = "fr"

    # Concurrency (CLI batch mode only)
    research_concurrency: int = 3

    # Web server
    web_host: str = "0.0.0.0"
    web_port: int = 8000


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> Config:
    """Load configuration from .env file and environment variables.

    Environment variables override .env values. Nothing is required: the
    Apify token lives in the settings file, not in the environment.
    """
    load_dotenv()

    return Config(
        settings_file=os.getenv("SETTINGS_FILE", "data/settings.json"),
        db_path=os.getenv("DB_PATH", ".prospect_research.db"),
        browser_headless=_env_bool("BROWSER_HEADLESS", True),
        navigation_timeout_ms=int(os.getenv("NAVIGATION_TIMEOUT_MS", "30000")),
        settle_ms=int(os.getenv("SETTLE_MS", "2000")),
        wait_until=os.getenv("WAIT_UNTIL", "networkidle"),
        search_result_limit=int(os.getenv("SEARCH_RESULT_LIMIT", "5")),
        apify_base_url=os.getenv("APIFY_BASE_URL", "https://api.apify.com/v2"),
        apify_timeout=int(os.getenv("APIFY_TIMEOUT", "30")),
        apify_run_timeout=int(os.getenv("APIFY_RUN_TIMEOUT", "300")),
        apify_language=os.getenv("APIFY_LANGUAGE", "fr"),
        apify_country=os.getenv("APIFY_COUNTRY", "fr"),
        research_concurrency=int(os.getenv("RESEARCH_CONCURRENCY", "3")),
        web_host=os.getenv("WEB_HOST", "0.0.0.0"),
        web_port=int(os.getenv("WEB_PORT", "8000")),
    )
