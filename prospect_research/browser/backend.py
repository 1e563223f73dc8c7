"""Research lookups driven through a local headless Chromium."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from urllib.parse import quote_plus, unquote, urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from prospect_research.browser import extract
from prospect_research.browser.session import BrowserLaunchError, BrowserSessionManager
from prospect_research.config import Config
from prospect_research.models import BackendName, LookupResult
from prospect_research.research.normalize import (
    ensure_scheme,
    find_emails,
    find_phones,
    find_social_links,
    normalize_contacts,
    normalize_profile,
    normalize_search_hits,
    normalize_website,
)

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.google.com/search?q={query}"
AUTH_WALL_MARKERS = ("authwall", "/login", "/signup", "/checkpoint")
AUTH_NOTE = "LinkedIn may require authentication for full profile access"


class BrowserAutomationBackend:
    """Profile, website, contact and search lookups over Playwright."""

    name = BackendName.PLAYWRIGHT

    def __init__(
        self,
        sessions: BrowserSessionManager,
        navigation_timeout_ms: int = 30000,
        settle_ms: int = 2000,
        wait_until: str = "networkidle",
        search_result_limit: int = 5,
    ):
        self.sessions = sessions
        self.navigation_timeout_ms = navigation_timeout_ms
        self.settle_ms = settle_ms
        self.wait_until = wait_until
        self.search_result_limit = search_result_limit

    @classmethod
    def from_config(cls, config: Config, sessions: BrowserSessionManager) -> BrowserAutomationBackend:
        return cls(
            sessions,
            navigation_timeout_ms=config.navigation_timeout_ms,
            settle_ms=config.settle_ms,
            wait_until=config.wait_until,
            search_result_limit=config.search_result_limit,
        )

    async def check_ready(self) -> str | None:
        try:
            await self.sessions.acquire()
        except BrowserLaunchError as e:
            return str(e)
        return None

    # --- Lookups ---

    async def lookup_profile(self, url: str) -> LookupResult:
        async def extract_profile(page: Page) -> LookupResult:
            raw = {
                "name": await extract.first_text(page, "h1", ".text-heading-xlarge"),
                "headline": await extract.first_text(
                    page, ".text-body-medium", "[data-generated-suggestion-target]",
                ),
                "location": await extract.first_text(page, ".text-body-small.inline"),
                "about": await extract.first_text(page, "#about + .display-flex .inline-show-more-text"),
                "currentCompany": await extract.first_text(page, ".inline-show-more-text"),
                "connectionCount": await extract.first_text(page, ".t-bold"),
                "profileUrl": page.url or url,
            }
            note = None
            if _is_auth_wall(page.url) or not raw["name"]:
                note = AUTH_NOTE
            return LookupResult.ok(
                self.name, "lookup_profile", normalize_profile(raw), note=note,
            )

        return await self._visit("lookup_profile", url, extract_profile)

    async def lookup_website(self, url: str) -> LookupResult:
        async def extract_website(page: Page) -> LookupResult:
            text = await extract.body_text(page)
            raw = {
                "url": page.url or url,
                "title": await extract.page_title(page),
                "description": await extract.meta_content(page, "description", "og:description"),
                "keywords": await extract.meta_content(page, "keywords"),
                "h1": await extract.first_text(page, "h1", limit=500),
                "emails": find_emails(text),
                "phones": find_phones(text),
                "socialLinks": find_social_links(await extract.link_hrefs(page)).model_dump(),
            }
            return LookupResult.ok(self.name, "lookup_website", normalize_website(raw))

        return await self._visit("lookup_website", ensure_scheme(url), extract_website)

    async def lookup_contacts(self, url: str) -> LookupResult:
        async def extract_contacts(page: Page) -> LookupResult:
            scanned = [await _contact_item(page)]
            contact_url = _contact_page_url(page.url, scanned[0]["links"])
            if contact_url:
                try:
                    await self._navigate(page, contact_url)
                    scanned.append(await _contact_item(page))
                except PlaywrightError as e:
                    logger.debug("Contact page %s skipped: %s", contact_url, e)
            return LookupResult.ok(self.name, "lookup_contacts", normalize_contacts(scanned))

        return await self._visit("lookup_contacts", ensure_scheme(url), extract_contacts)

    async def lookup_search(self, query: str) -> LookupResult:
        async def extract_search(page: Page) -> LookupResult:
            entries = await extract.serp_entries(page, self.search_result_limit)
            hits = normalize_search_hits(entries, limit=self.search_result_limit)
            return LookupResult.ok(self.name, "lookup_search", hits, query=query)

        search_url = GOOGLE_SEARCH_URL.format(query=quote_plus(query))
        result = await self._visit("lookup_search", search_url, extract_search)
        if not result.success:
            result.query = query
        return result

    # --- Plumbing ---

    async def _navigate(self, page: Page, url: str) -> None:
        await page.goto(url, wait_until=self.wait_until, timeout=self.navigation_timeout_ms)
        if self.settle_ms:
            await page.wait_for_timeout(self.settle_ms)

    async def _visit(
        self,
        method: str,
        url: str,
        extractor: Callable[[Page], Awaitable[LookupResult]],
    ) -> LookupResult:
        """Open an isolated page, navigate, extract; failures become failed results."""
        try:
            async with self.sessions.isolated_page() as page:
                await self._navigate(page, url)
                return await extractor(page)
        except BrowserLaunchError as e:
            logger.warning("%s: %s", method, e)
            return LookupResult.failed(self.name, method, str(e))
        except PlaywrightTimeoutError:
            error = f"Navigation timeout after {self.navigation_timeout_ms / 1000:.0f}s: {url}"
            logger.warning("%s: %s", method, error)
            return LookupResult.failed(self.name, method, error)
        except PlaywrightError as e:
            logger.warning("%s failed for %s: %s", method, url[:80], e)
            return LookupResult.failed(self.name, method, e.message or str(e))


def _is_auth_wall(url: str) -> bool:
    lowered = (url or "").lower()
    return any(marker in lowered for marker in AUTH_WALL_MARKERS)


async def _contact_item(page: Page) -> dict:
    """Contact-scraper-shaped dict for the current page."""
    text = await extract.body_text(page)
    hrefs = await extract.link_hrefs(page)
    mailto = [unquote(h[7:].split("?")[0]) for h in hrefs if h.lower().startswith("mailto:")]
    tel = [unquote(h[4:]) for h in hrefs if h.lower().startswith("tel:")]
    return {
        "url": page.url,
        "emails": mailto + find_emails(text, limit=None),
        "phones": tel + find_phones(text, limit=None),
        "links": hrefs,
    }


def _contact_page_url(current_url: str, hrefs: list[str]) -> str | None:
    """First same-site link that looks like a contact page."""
    host = urlparse(current_url).netloc.lower().removeprefix("www.")
    for href in hrefs:
        parsed = urlparse(href)
        if parsed.scheme not in ("http", "https"):
            continue
        if parsed.netloc.lower().removeprefix("www.") != host:
            continue
        if "contact" in parsed.path.lower() and href.rstrip("/") != current_url.rstrip("/"):
            return href
    return None
