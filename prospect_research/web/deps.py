"""Dependency injection for FastAPI: shared config, database, research backends."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from prospect_research.apify.backend import ActorPlatformBackend
from prospect_research.browser.backend import BrowserAutomationBackend
from prospect_research.browser.session import BrowserSessionManager
from prospect_research.config import Config, load_config
from prospect_research.db.database import Database
from prospect_research.db.migrations import run_migrations
from prospect_research.db.prospects import ProspectRepository
from prospect_research.settings import SettingsStore

logger = logging.getLogger(__name__)


@lru_cache
def get_config() -> Config:
    return load_config()


_db_instance: Database | None = None


def get_db() -> Database:
    global _db_instance
    if _db_instance is None or not _db_instance.is_connected:
        _db_instance = Database(get_config().db_path)
        _db_instance.connect()
        run_migrations(_db_instance)
    return _db_instance


def close_db() -> None:
    global _db_instance
    if _db_instance:
        _db_instance.close()
        _db_instance = None


def get_prospects() -> ProspectRepository:
    return ProspectRepository(get_db())


@dataclass
class Services:
    """Long-lived research resources, built once per app lifetime."""
    settings: SettingsStore
    sessions: BrowserSessionManager
    browser: BrowserAutomationBackend
    apify: ActorPlatformBackend


_services: Services | None = None


def init_services(config: Config | None = None) -> Services:
    global _services
    if _services is None:
        config = config or get_config()
        settings = SettingsStore(config.settings_file)
        sessions = BrowserSessionManager(headless=config.browser_headless)
        _services = Services(
            settings=settings,
            sessions=sessions,
            browser=BrowserAutomationBackend.from_config(config, sessions),
            apify=ActorPlatformBackend.from_config(config, settings),
        )
    return _services


async def close_services() -> None:
    global _services
    if _services is not None:
        await _services.sessions.close()
        await _services.apify.close()
        _services = None


def get_settings_store() -> SettingsStore:
    return init_services().settings


def get_browser_backend() -> BrowserAutomationBackend:
    return init_services().browser


def get_apify_backend() -> ActorPlatformBackend:
    return init_services().apify
