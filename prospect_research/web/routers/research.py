"""Research API: run a backend against a stored prospect, ad-hoc scrapes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from prospect_research.apify.backend import NOT_CONFIGURED, ActorPlatformBackend
from prospect_research.browser.backend import BrowserAutomationBackend
from prospect_research.db.prospects import ProspectRepository
from prospect_research.models import ApiModel, LookupKind, LookupRequest
from prospect_research.research.backend import ResearchBackend
from prospect_research.research.orchestrator import ResearchOrchestrator
from prospect_research.web.deps import get_apify_backend, get_browser_backend, get_prospects
from prospect_research.web.responses import error_response

logger = logging.getLogger(__name__)
router = APIRouter(tags=["research"])

# Scrape "type" values used by the UI; anything else is a website scrape
_SCRAPE_KINDS = {
    "linkedin": LookupKind.PROFILE,
    "contacts": LookupKind.CONTACTS,
    "search": LookupKind.SEARCH,
}


class ScrapeRequest(ApiModel):
    url: str = ""
    type: str = "website"


@router.post("/prospects/{prospect_id}/research/playwright")
async def research_with_playwright(
    prospect_id: str,
    prospects: ProspectRepository = Depends(get_prospects),
    backend: BrowserAutomationBackend = Depends(get_browser_backend),
):
    return await _research(prospect_id, prospects, backend)


@router.post("/prospects/{prospect_id}/research/apify")
async def research_with_apify(
    prospect_id: str,
    prospects: ProspectRepository = Depends(get_prospects),
    backend: ActorPlatformBackend = Depends(get_apify_backend),
):
    if prospects.get(prospect_id) is None:
        return error_response(404, "Prospect not found")
    if not backend.is_configured():
        return error_response(400, f"{NOT_CONFIGURED}. Set it in Settings first.")
    return await _research(prospect_id, prospects, backend)


@router.get("/prospects/{prospect_id}/research")
async def get_research(prospect_id: str, prospects: ProspectRepository = Depends(get_prospects)):
    research = prospects.get_research(prospect_id)
    if research is None:
        return error_response(404, "Prospect not found")
    return {"success": True, "data": research}


@router.post("/research/scrape")
async def scrape(req: ScrapeRequest, backend: BrowserAutomationBackend = Depends(get_browser_backend)):
    """Single ad-hoc browser lookup. For ``search`` the url field is the query."""
    if not req.url.strip():
        return error_response(400, "URL required")
    kind = _SCRAPE_KINDS.get(req.type, LookupKind.WEBSITE)
    lookup = LookupRequest(kind=kind, url=req.url, query=req.url if kind == LookupKind.SEARCH else "")
    result = await ResearchOrchestrator(backend).run_lookup(lookup)
    return result.to_api()


@router.get("/research/apify/actors")
async def apify_actors(backend: ActorPlatformBackend = Depends(get_apify_backend)):
    return {
        "success": True,
        "configured": backend.is_configured(),
        "data": [a.to_api() for a in backend.available_actors()],
    }


async def _research(prospect_id: str, prospects: ProspectRepository, backend: ResearchBackend):
    prospect = prospects.get(prospect_id)
    if prospect is None:
        return error_response(404, "Prospect not found")

    outcome = await ResearchOrchestrator(backend).research(prospect)
    if not outcome.success:
        partial = outcome.partial_data.to_api() if outcome.partial_data else None
        return error_response(500, outcome.error or "Research failed", partialData=partial)

    prospects.save_research(prospect_id, outcome.data)
    return outcome.to_api()
