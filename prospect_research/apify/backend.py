"""Research lookups and Google Maps search via Apify actors."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from prospect_research.apify.client import ApifyClient, ApifyError, ApifyRunError
from prospect_research.config import Config
from prospect_research.models import (
    ActorInfo,
    BackendName,
    LookupResult,
    PlacesSearchResult,
)
from prospect_research.research.normalize import (
    ensure_scheme,
    filter_places,
    normalize_contacts,
    normalize_place,
    normalize_profile,
    normalize_search_hits,
    normalize_website,
)
from prospect_research.settings import SettingsStore

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Apify API key not configured"

PROFILE_ACTOR = "curious_coder/linkedin-profile-scraper"
SEARCH_ACTOR = "apify/google-search-scraper"
WEBSITE_ACTOR = "apify/website-content-crawler"
CONTACTS_ACTOR = "apify/contact-info-scraper"
PLACES_ACTOR = "compass/crawler-google-places"

AVAILABLE_ACTORS = [
    ActorInfo(
        id="google-maps-scraper", actor_id=PLACES_ACTOR, name="Google Maps Scraper",
        description="Find businesses on Google Maps",
    ),
    ActorInfo(
        id="linkedin-profile-scraper", actor_id=PROFILE_ACTOR, name="LinkedIn Profile Scraper",
        description="Scrape public LinkedIn profile data",
    ),
    ActorInfo(
        id="google-search-scraper", actor_id=SEARCH_ACTOR, name="Google Search Scraper",
        description="Search and extract Google results",
    ),
    ActorInfo(
        id="website-content-crawler", actor_id=WEBSITE_ACTOR, name="Website Content Crawler",
        description="Crawl and extract website content",
    ),
    ActorInfo(
        id="contact-info-scraper", actor_id=CONTACTS_ACTOR, name="Contact Info Scraper",
        description="Extract emails, phones, social links",
    ),
]


class ActorPlatformBackend:
    """Profile, website, contact, search and places lookups as Apify actor runs.

    The token is read from the settings file on first use and the answer is
    cached for the process; ``reset_configuration()`` forgets it.
    """

    name = BackendName.APIFY

    def __init__(
        self,
        settings: SettingsStore,
        base_url: str = "https://api.apify.com/v2",
        timeout: float = 30,
        run_timeout: float = 300,
        language: str = "fr",
        country: str = "fr",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.base_url = base_url
        self.timeout = timeout
        self.run_timeout = run_timeout
        self.language = language
        self.country = country
        self._transport = transport
        self._client: ApifyClient | None = None
        self._configured: bool | None = None

    @classmethod
    def from_config(cls, config: Config, settings: SettingsStore, **kwargs: Any) -> ActorPlatformBackend:
        return cls(
            settings,
            base_url=config.apify_base_url,
            timeout=config.apify_timeout,
            run_timeout=config.apify_run_timeout,
            language=config.apify_language,
            country=config.apify_country,
            **kwargs,
        )

    # --- Configuration ---

    def is_configured(self) -> bool:
        if self._configured is None:
            token = self.settings.apify_token()
            if token:
                self._client = ApifyClient(
                    token,
                    base_url=self.base_url,
                    timeout=self.timeout,
                    run_timeout=self.run_timeout,
                    transport=self._transport,
                )
            else:
                logger.info("No Apify API key configured")
            self._configured = bool(token)
        return self._configured

    async def reset_configuration(self) -> None:
        await self.close()
        self._configured = None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def check_ready(self) -> str | None:
        return None if self.is_configured() else NOT_CONFIGURED

    @staticmethod
    def available_actors() -> list[ActorInfo]:
        return list(AVAILABLE_ACTORS)

    # --- Lookups ---

    async def lookup_profile(self, url: str) -> LookupResult:
        run_input = {
            "profileUrls": [url],
            "proxy": {"useApifyProxy": True, "apifyProxyGroups": ["RESIDENTIAL"]},
        }

        def shape(items: list[dict]) -> Any:
            if not items:
                raise _NoData("No data returned")
            return normalize_profile(items[0])

        return await self._lookup(PROFILE_ACTOR, run_input, shape)

    async def lookup_search(self, query: str) -> LookupResult:
        run_input = {
            "queries": query,
            "maxPagesPerQuery": 1,
            "resultsPerPage": 10,
            "mobileResults": False,
            "languageCode": self.language,
            "countryCode": self.country,
        }
        result = await self._lookup(SEARCH_ACTOR, run_input, normalize_search_hits)
        result.query = query
        return result

    async def lookup_website(self, url: str) -> LookupResult:
        run_input = {
            "startUrls": [{"url": ensure_scheme(url)}],
            "maxCrawlPages": 5,
            "maxCrawlDepth": 1,
            "includeHtmlContent": False,
        }

        def shape(items: list[dict]) -> Any:
            if not items:
                raise _NoData("No pages crawled")
            return normalize_website(items[0], pages=items[1:])

        return await self._lookup(WEBSITE_ACTOR, run_input, shape)

    async def lookup_contacts(self, url: str) -> LookupResult:
        run_input = {
            "startUrls": [{"url": ensure_scheme(url)}],
            "maxRequestsPerCrawl": 10,
        }
        return await self._lookup(CONTACTS_ACTOR, run_input, normalize_contacts)

    # --- Bulk / passthrough ---

    async def search_places(
        self,
        query: str,
        location: str,
        max_results: int = 20,
        has_website: bool = False,
        max_reviews: int | None = None,
    ) -> PlacesSearchResult:
        if not self.is_configured():
            return PlacesSearchResult(success=False, error=NOT_CONFIGURED, actor_id=PLACES_ACTOR)

        run_input = {
            "searchStringsArray": [query],
            "locationQuery": location,
            "maxCrawledPlacesPerSearch": max_results,
            "language": self.language,
            "deeperCityScrape": False,
            "scrapeContacts": True,
            "scrapeImages": False,
            "scrapeReviews": False,
            "scrapeSocialMediaProfiles": {
                "facebook": True,
                "instagram": True,
                "twitter": False,
                "linkedin": True,
            },
        }
        try:
            run, items = await self._client.call(PLACES_ACTOR, run_input)  # type: ignore[union-attr]
            places = [normalize_place(item) for item in items if isinstance(item, dict)]
        except (ApifyError, TypeError, ValueError) as e:
            logger.warning("Places search '%s' in %s failed: %s", query[:60], location[:60], e)
            return PlacesSearchResult(
                success=False, error=str(e), actor_id=PLACES_ACTOR, run_id=_run_id(e),
            )

        kept = filter_places(places, has_website=has_website, max_reviews=max_reviews)
        logger.info(
            "Places search '%s' in %s: %d returned, %d after filters",
            query[:60], location[:60], len(places), len(kept),
        )
        return PlacesSearchResult(
            success=True,
            data=kept,
            total_results=len(kept),
            actor_id=PLACES_ACTOR,
            run_id=run.get("id"),
        )

    async def run_actor(self, actor_id: str, run_input: dict[str, Any]) -> dict[str, Any]:
        """Run any actor and return its raw items."""
        if not self.is_configured():
            return {"success": False, "error": NOT_CONFIGURED}
        try:
            run, items = await self._client.call(actor_id, run_input or {})  # type: ignore[union-attr]
        except ApifyError as e:
            logger.warning("Actor %s failed: %s", actor_id, e)
            return {"success": False, "error": str(e), "actorId": actor_id, "runId": _run_id(e)}
        return {
            "success": True,
            "data": items,
            "totalResults": len(items),
            "actorId": actor_id,
            "runId": run.get("id"),
        }

    async def _lookup(self, actor_id: str, run_input: dict[str, Any], shape) -> LookupResult:
        if not self.is_configured():
            return LookupResult.failed(self.name, actor_id, NOT_CONFIGURED)
        try:
            run, items = await self._client.call(actor_id, run_input)  # type: ignore[union-attr]
            data = shape(items)
        except _NoData as e:
            return LookupResult.failed(self.name, actor_id, str(e), run_id=run.get("id"))
        except (ApifyError, TypeError, ValueError) as e:
            logger.warning("Actor %s lookup failed: %s", actor_id, e)
            return LookupResult.failed(self.name, actor_id, str(e), run_id=_run_id(e))
        return LookupResult.ok(self.name, actor_id, data, run_id=run.get("id"))


class _NoData(Exception):
    """The run succeeded but produced nothing usable."""


def _run_id(e: Exception) -> str | None:
    return e.run_id if isinstance(e, ApifyRunError) else None
