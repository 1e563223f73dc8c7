"""Fan a prospect out to one backend's lookups and join the results."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from prospect_research.models import (
    LookupKind,
    LookupRequest,
    LookupResult,
    Prospect,
    ProspectRef,
    ResearchAggregate,
    ResearchOutcome,
)
from prospect_research.research.backend import ResearchBackend

logger = logging.getLogger(__name__)

LookupFactory = Callable[[], Awaitable[LookupResult]]

# Aggregate slot -> method name used when a lookup blows up instead of reporting
_SLOT_METHODS = {
    "profile": "lookup_profile",
    "website": "lookup_website",
    "contacts": "lookup_contacts",
    "search_results": "lookup_search",
}


class ResearchOrchestrator:
    """Runs every applicable lookup for a prospect concurrently.

    Individual lookup failures never fail the research call: they land in
    their slot as failed results. Only a bug in planning or assembly turns
    into ``success=False``.
    """

    def __init__(self, backend: ResearchBackend):
        self.backend = backend

    def plan_lookups(self, prospect: Prospect) -> dict[str, LookupFactory]:
        """Which slots to fill, based on the identifying fields present."""
        backend = self.backend
        plan: dict[str, LookupFactory] = {}
        if prospect.linkedin_url:
            plan["profile"] = lambda: backend.lookup_profile(prospect.linkedin_url)
        if prospect.website:
            plan["website"] = lambda: backend.lookup_website(prospect.website)
            plan["contacts"] = lambda: backend.lookup_contacts(prospect.website)
        query = prospect.search_query
        if query:
            plan["search_results"] = lambda: backend.lookup_search(query)
        return plan

    async def research(self, prospect: Prospect) -> ResearchOutcome:
        aggregate = ResearchAggregate(
            prospect=ProspectRef(id=prospect.id, name=prospect.name),
            source=self.backend.name,
        )
        try:
            plan = self.plan_lookups(prospect)
            results = await self._run_plan(plan)
            for slot, result in results.items():
                setattr(aggregate, slot, result)
            aggregate.researched_at = datetime.now().isoformat()
        except Exception as e:
            logger.exception("Research orchestration failed for prospect %s", prospect.id)
            return ResearchOutcome(success=False, error=str(e) or type(e).__name__, partial_data=aggregate)

        failed = aggregate.failed_slots
        if failed:
            logger.info(
                "Research for %s via %s: %d/%d lookups failed (%s)",
                prospect.id, self.backend.name.value,
                len(failed), len(aggregate.attempted()), ", ".join(failed),
            )
        return ResearchOutcome(
            success=True,
            data=aggregate,
            partial_data=aggregate if failed else None,
        )

    async def _run_plan(self, plan: dict[str, LookupFactory]) -> dict[str, LookupResult]:
        if not plan:
            return {}

        not_ready = await self.backend.check_ready()
        if not_ready:
            logger.warning("%s backend not ready: %s", self.backend.name.value, not_ready)
            return {slot: self._failure(slot, not_ready) for slot in plan}

        slots = list(plan)
        settled = await asyncio.gather(
            *(plan[slot]() for slot in slots),
            return_exceptions=True,
        )

        results: dict[str, LookupResult] = {}
        for slot, outcome in zip(slots, settled):
            if isinstance(outcome, LookupResult):
                results[slot] = outcome
            elif isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.warning("Lookup %s raised: %r", slot, outcome)
                results[slot] = self._failure(slot, str(outcome) or type(outcome).__name__)
            else:
                raise TypeError(f"lookup {slot} returned {type(outcome).__name__}, expected LookupResult")
        return results

    async def run_lookup(self, request: LookupRequest) -> LookupResult:
        """Single lookup outside a full research call (ad-hoc scrapes)."""
        backend = self.backend
        kind = request.kind
        if kind == LookupKind.PLACES:
            search_places = getattr(backend, "search_places", None)
            if search_places is None:
                return LookupResult.failed(backend.name, "search_places", "Places search needs the apify backend")
            places = await search_places(
                request.query,
                request.location,
                max_results=request.max_results,
                has_website=request.has_website,
                max_reviews=request.max_reviews,
            )
            if not places.success:
                return LookupResult.failed(
                    backend.name, places.actor_id, places.error or "Places search failed",
                    run_id=places.run_id, query=request.query,
                )
            return LookupResult.ok(
                backend.name, places.actor_id, places.data, run_id=places.run_id, query=request.query,
            )

        target = (request.query or request.url) if kind == LookupKind.SEARCH else request.url
        if not target.strip():
            raise ValueError(f"{kind.value} lookup needs a {'query' if kind == LookupKind.SEARCH else 'url'}")
        if kind == LookupKind.PROFILE:
            return await backend.lookup_profile(target)
        if kind == LookupKind.CONTACTS:
            return await backend.lookup_contacts(target)
        if kind == LookupKind.SEARCH:
            return await backend.lookup_search(target)
        return await backend.lookup_website(target)

    def _failure(self, slot: str, error: str) -> LookupResult:
        return LookupResult.failed(self.backend.name, _SLOT_METHODS[slot], error)
