"""Pydantic data models for the prospect research engine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def _now() -> str:
    return datetime.now().isoformat()


class ApiModel(BaseModel):
    """Base for models that cross the HTTP boundary (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BackendName(str, Enum):
    PLAYWRIGHT = "playwright"
    APIFY = "apify"


class LookupKind(str, Enum):
    PROFILE = "profile"
    WEBSITE = "website"
    CONTACTS = "contacts"
    SEARCH = "search"
    PLACES = "places"


# ---------------------------------------------------------------------------
# Prospect (owned by the CRM; the engine only reads it and writes research)
# ---------------------------------------------------------------------------

class Prospect(ApiModel):
    id: str
    name: str = ""
    company: str = ""
    linkedin_url: str = ""
    website: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    source: str = "manual"

    @field_validator("name", "company", "linkedin_url", "website", mode="before")
    @classmethod
    def coerce_blank(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @property
    def search_query(self) -> str:
        return f"{self.name} {self.company}".strip()


class ProspectRef(ApiModel):
    id: str
    name: str = ""


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

class LookupRequest(ApiModel):
    """One lookup of one kind; search reads ``query``, places also reads the filters."""
    prospect_id: str | None = None
    kind: LookupKind
    url: str = ""
    query: str = ""
    location: str = ""
    max_results: int = 20
    has_website: bool = False
    max_reviews: int | None = None


class LookupResult(ApiModel):
    """Envelope for one lookup against one backend.

    A failed result always carries a non-empty error and no data.
    """
    success: bool
    data: Any = None
    error: str | None = None
    source: BackendName
    actor_or_method_id: str = ""
    run_id: str | None = None
    query: str | None = None
    note: str | None = None

    @model_validator(mode="after")
    def check_failure_shape(self) -> LookupResult:
        if not self.success:
            if not self.error:
                raise ValueError("failed LookupResult requires an error message")
            if self.data is not None:
                raise ValueError("failed LookupResult must not carry data")
        return self

    @classmethod
    def ok(cls, source: BackendName, method: str, data: Any, **extra: Any) -> LookupResult:
        return cls(success=True, data=data, source=source, actor_or_method_id=method, **extra)

    @classmethod
    def failed(cls, source: BackendName, method: str, error: str, **extra: Any) -> LookupResult:
        return cls(
            success=False,
            error=error or "unknown error",
            source=source,
            actor_or_method_id=method,
            **extra,
        )


class ResearchAggregate(ApiModel):
    """All lookups of one research call. Slots left None were never attempted."""
    prospect: ProspectRef
    profile: LookupResult | None = None
    website: LookupResult | None = None
    contacts: LookupResult | None = None
    search_results: LookupResult | None = None
    researched_at: str = Field(default_factory=_now)
    source: BackendName

    def attempted(self) -> dict[str, LookupResult]:
        slots = {
            "profile": self.profile,
            "website": self.website,
            "contacts": self.contacts,
            "search_results": self.search_results,
        }
        return {k: v for k, v in slots.items() if v is not None}

    @property
    def failed_slots(self) -> list[str]:
        return [k for k, v in self.attempted().items() if not v.success]


class ResearchOutcome(ApiModel):
    success: bool
    data: ResearchAggregate | None = None
    partial_data: ResearchAggregate | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Canonical records (normalizer output)
# ---------------------------------------------------------------------------

class SocialLinks(ApiModel):
    linkedin: str | None = None
    twitter: str | None = None
    facebook: str | None = None
    instagram: str | None = None


class ProfileRecord(ApiModel):
    name: str | None = None
    headline: str | None = None
    location: str | None = None
    about: str | None = None
    current_company: str | None = None
    connections: str | None = None
    profile_url: str | None = None
    scraped_at: str = Field(default_factory=_now)


class PageSummary(ApiModel):
    url: str = ""
    title: str | None = None
    excerpt: str | None = None


class WebsiteRecord(ApiModel):
    url: str = ""
    title: str | None = None
    description: str | None = None
    keywords: str | None = None
    h1: str | None = None
    emails: list[str] = Field(default_factory=list)
    phones: list[str] = Field(default_factory=list)
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    pages: list[PageSummary] = Field(default_factory=list)
    scraped_at: str = Field(default_factory=_now)


class ContactRecord(ApiModel):
    emails: list[str] = Field(default_factory=list)
    phones: list[str] = Field(default_factory=list)
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    pages_scanned: list[str] = Field(default_factory=list)
    scraped_at: str = Field(default_factory=_now)


class SearchHit(ApiModel):
    title: str = ""
    url: str = ""
    snippet: str | None = None
    position: int = 0


class PlaceSocialMedia(ApiModel):
    facebook: str | None = None
    instagram: str | None = None
    linkedin: str | None = None


class PlaceRecord(ApiModel):
    id: str
    name: str = ""
    company: str = ""
    address: str = ""
    phone: str = ""
    website: str = ""
    email: str = ""
    category: str = ""
    rating: float | None = None
    review_count: int = 0
    map_url: str = ""
    place_id: str = ""
    latitude: float | None = None
    longitude: float | None = None
    social_media: PlaceSocialMedia = Field(default_factory=PlaceSocialMedia)
    source: str = "google_maps"
    scraped_at: str = Field(default_factory=_now)

    @field_validator("review_count", mode="before")
    @classmethod
    def non_negative_reviews(cls, v):
        try:
            count = int(v)
        except (TypeError, ValueError):
            return 0
        return max(count, 0)


class PlacesSearchResult(ApiModel):
    success: bool
    data: list[PlaceRecord] = Field(default_factory=list)
    total_results: int = 0
    source: BackendName = BackendName.APIFY
    actor_id: str = ""
    run_id: str | None = None
    error: str | None = None


class ActorInfo(ApiModel):
    id: str
    actor_id: str
    name: str
    description: str = ""
