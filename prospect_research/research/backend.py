"""The capability set every research backend implements."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from prospect_research.models import BackendName, LookupResult


@runtime_checkable
class ResearchBackend(Protocol):
    """A research strategy the orchestrator can fan lookups out to.

    Lookups report failure through ``LookupResult.success``; they are not
    expected to raise.
    """

    name: BackendName

    async def check_ready(self) -> str | None:
        """Return an error message if no lookup can run right now, else None."""
        ...

    async def lookup_profile(self, url: str) -> LookupResult: ...

    async def lookup_website(self, url: str) -> LookupResult: ...

    async def lookup_contacts(self, url: str) -> LookupResult: ...

    async def lookup_search(self, query: str) -> LookupResult: ...
