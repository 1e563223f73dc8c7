"""Google Maps business search, import into prospects, raw actor runs."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import Field

from prospect_research.apify.backend import ActorPlatformBackend
from prospect_research.db.prospects import ProspectRepository
from prospect_research.models import ApiModel, PlaceRecord
from prospect_research.web.deps import get_apify_backend, get_prospects
from prospect_research.web.responses import error_response

logger = logging.getLogger(__name__)
router = APIRouter(tags=["search"])


class PlacesSearchRequest(ApiModel):
    query: str = ""
    location: str = ""
    max_results: int = Field(default=20, ge=1, le=500)
    has_website: bool = False
    max_reviews: int | None = Field(default=None, ge=0)


class ImportRequest(ApiModel):
    results: list[PlaceRecord] = Field(default_factory=list)


class ActorRunRequest(ApiModel):
    actor_id: str = ""
    input: dict[str, Any] = Field(default_factory=dict)


@router.post("/search/google-maps")
async def search_google_maps(
    req: PlacesSearchRequest,
    backend: ActorPlatformBackend = Depends(get_apify_backend),
):
    if not req.query.strip() or not req.location.strip():
        return error_response(400, "Query and location are required")
    result = await backend.search_places(
        req.query,
        req.location,
        max_results=req.max_results,
        has_website=req.has_website,
        max_reviews=req.max_reviews,
    )
    return result.to_api()


@router.post("/search/import")
async def import_places(req: ImportRequest, prospects: ProspectRepository = Depends(get_prospects)):
    if not req.results:
        return error_response(400, "Results array is required")
    created = [prospects.create_from_place(place) for place in req.results]
    logger.info("Imported %d places as prospects", len(created))
    return {
        "success": True,
        "data": [p.to_api() for p in created],
        "imported": len(created),
    }


@router.get("/search/status")
async def search_status(backend: ActorPlatformBackend = Depends(get_apify_backend)):
    return {
        "success": True,
        "configured": backend.is_configured(),
        "actors": [a.to_api() for a in backend.available_actors()],
    }


@router.post("/apify/run")
async def run_actor(req: ActorRunRequest, backend: ActorPlatformBackend = Depends(get_apify_backend)):
    if not req.actor_id.strip():
        return error_response(400, "actorId is required")
    return await backend.run_actor(req.actor_id.strip(), req.input)
