"""Map backend-specific payloads onto the canonical record schema.

Every data source names the same thing differently (``title`` vs ``name``,
``totalScore`` vs ``rating``). Each canonical field has an ordered alias
list; the first alias holding a non-empty value wins. Missing fields fall
back to a default, and only a non-mapping item is an error.
"""

from __future__ import annotations

import math
import re
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from prospect_research.models import (
    ContactRecord,
    PageSummary,
    PlaceRecord,
    PlaceSocialMedia,
    ProfileRecord,
    SearchHit,
    SocialLinks,
    WebsiteRecord,
)

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_RE = re.compile(r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")

# Hosts that identify a social profile link, by network
SOCIAL_PATTERNS: dict[str, tuple[str, ...]] = {
    "linkedin": ("linkedin.com",),
    "twitter": ("twitter.com", "x.com"),
    "facebook": ("facebook.com",),
    "instagram": ("instagram.com",),
}

MAX_EMAILS = 5
MAX_PHONES = 3
EXCERPT_CHARS = 500


def _require_mapping(item: Any) -> Mapping[str, Any]:
    if not isinstance(item, Mapping):
        raise TypeError(f"expected a JSON object, got {type(item).__name__}")
    return item


def _lookup_path(item: Mapping[str, Any], path: str) -> Any:
    value: Any = item
    for part in path.split("."):
        if isinstance(value, Mapping):
            value = value.get(part)
        elif isinstance(value, list) and part.isdigit():
            idx = int(part)
            value = value[idx] if idx < len(value) else None
        else:
            return None
        if value is None:
            return None
    return value


def pick(item: Mapping[str, Any], *aliases: str, default: Any = None) -> Any:
    """Return the first non-empty value among ``aliases`` (dotted paths allowed)."""
    for alias in aliases:
        value = _lookup_path(item, alias)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        return value
    return default


def _text(item: Mapping[str, Any], *aliases: str) -> str | None:
    value = pick(item, *aliases)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v)
    return str(value) or None


def _float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int(value: Any) -> int | None:
    number = _float(value)
    return int(number) if number is not None and math.isfinite(number) else None


def _scraped_at(item: Mapping[str, Any]) -> str:
    value = pick(item, "scrapedAt")
    return str(value) if value is not None else datetime.now().isoformat()


def _unique(values: Iterable[Any], limit: int | None = None) -> list[str]:
    seen: list[str] = []
    for v in values:
        if not isinstance(v, str):
            continue
        v = v.strip()
        if v and v not in seen:
            seen.append(v)
        if limit is not None and len(seen) >= limit:
            break
    return seen


# ---------------------------------------------------------------------------
# Text helpers shared by both backends
# ---------------------------------------------------------------------------

def find_emails(text: str | None, limit: int = MAX_EMAILS) -> list[str]:
    if not text:
        return []
    return _unique(EMAIL_RE.findall(text), limit)


def find_phones(text: str | None, limit: int = MAX_PHONES) -> list[str]:
    if not text:
        return []
    return _unique(PHONE_RE.findall(text), limit)


def find_social_links(hrefs: Iterable[str]) -> SocialLinks:
    """First link per network, in document order."""
    found: dict[str, str] = {}
    for href in hrefs:
        if not href:
            continue
        lowered = href.lower()
        for network, hosts in SOCIAL_PATTERNS.items():
            if network in found:
                continue
            if any(_matches_host(lowered, host) for host in hosts):
                found[network] = href
    return SocialLinks(**found)


def _matches_host(href: str, host: str) -> bool:
    # "x.com" must not match "dropbox.com"
    return re.search(r"(?:^|[/.])" + re.escape(host) + r"(?:[/:?#]|$)", href) is not None


def ensure_scheme(url: str) -> str:
    url = url.strip()
    if url.startswith(("http://", "https://")):
        return url
    return f"https://{url}"


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

def normalize_profile(item: Any) -> ProfileRecord:
    """Profile page extraction or LinkedIn actor item -> ProfileRecord."""
    item = _require_mapping(item)
    name = _text(item, "name", "fullName", "full_name")
    if name is None:
        first = _text(item, "firstName", "first_name") or ""
        last = _text(item, "lastName", "last_name") or ""
        name = f"{first} {last}".strip() or None
    connections = pick(item, "connectionCount", "connections", "connectionsCount", "followers")
    return ProfileRecord(
        name=name,
        headline=_text(item, "headline", "occupation", "title", "jobTitle"),
        location=_text(item, "location", "addressWithCountry", "geoLocationName", "locationName"),
        about=_text(item, "about", "summary", "description"),
        current_company=_text(
            item,
            "currentCompany",
            "companyName",
            "experiences.0.companyName",
            "positions.0.companyName",
        ),
        connections=str(connections) if connections is not None else None,
        profile_url=_text(item, "profileUrl", "linkedinUrl", "url", "inputUrl"),
        scraped_at=_scraped_at(item),
    )


# ---------------------------------------------------------------------------
# Websites
# ---------------------------------------------------------------------------

def normalize_website(item: Any, pages: list[Any] | None = None) -> WebsiteRecord:
    """Single-page extraction, or the first item of a crawl plus its sibling pages.

    Passing ``pages`` (even an empty list) marks the item as a crawl result,
    so the per-page summaries are filled in.
    """
    item = _require_mapping(item)
    crawl = [_require_mapping(p) for p in (pages or [])]
    body_text = " ".join(
        t for t in (_text(p, "text", "markdown", "bodyText") for p in [item, *crawl]) if t
    )

    emails = item.get("emails")
    phones = item.get("phones")
    social = item.get("socialLinks")
    if isinstance(social, Mapping):
        social_links = SocialLinks(**{
            k: v for k, v in social.items() if k in SOCIAL_PATTERNS and isinstance(v, str) and v
        })
    else:
        social_links = find_social_links(_hrefs(item, crawl))

    h1 = _text(item, "h1", "metadata.h1")
    return WebsiteRecord(
        url=_text(item, "url", "loadedUrl", "metadata.canonicalUrl") or "",
        title=_text(item, "title", "metadata.title"),
        description=_text(
            item, "description", "metadata.description", "metadata.openGraph.description",
        ),
        keywords=_text(item, "keywords", "metadata.keywords"),
        h1=h1[:EXCERPT_CHARS] if h1 else None,
        emails=_unique(emails, MAX_EMAILS) if isinstance(emails, list) else find_emails(body_text),
        phones=_unique(phones, MAX_PHONES) if isinstance(phones, list) else find_phones(body_text),
        social_links=social_links,
        pages=[
            PageSummary(
                url=_text(p, "url", "loadedUrl") or "",
                title=_text(p, "metadata.title", "title"),
                excerpt=(_text(p, "text", "markdown") or "")[:EXCERPT_CHARS] or None,
            )
            for p in [item, *crawl]
            if pages is not None
        ],
        scraped_at=_scraped_at(item),
    )


def _hrefs(item: Mapping[str, Any], crawl: list[Mapping[str, Any]]) -> list[str]:
    hrefs: list[str] = []
    for source in [item, *crawl]:
        links = source.get("links") or []
        if isinstance(links, list):
            hrefs.extend(
                link if isinstance(link, str) else str(pick(link, "url", "href", default=""))
                for link in links
                if isinstance(link, (str, Mapping))
            )
    return hrefs


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------

def normalize_contacts(items: Iterable[Any]) -> ContactRecord:
    """Merge contact-scraper items (one per crawled page) into one record."""
    emails: list[str] = []
    phones: list[str] = []
    hrefs: list[str] = []
    pages: list[str] = []
    for raw in items:
        item = _require_mapping(raw)
        emails.extend(_strings(item.get("emails")))
        phones.extend(_strings(item.get("phones")))
        phones.extend(_strings(item.get("phonesUncertain")))
        for key in ("linkedIns", "twitters", "facebooks", "instagrams", "links"):
            hrefs.extend(_strings(item.get(key)))
        url = _text(item, "url", "domain")
        if url:
            pages.append(url)
    return ContactRecord(
        emails=_unique(emails),
        phones=_unique(phones),
        social_links=find_social_links(hrefs),
        pages_scanned=_unique(pages),
    )


def _strings(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


# ---------------------------------------------------------------------------
# Search results
# ---------------------------------------------------------------------------

def normalize_search_hits(items: Iterable[Any], limit: int | None = None) -> list[SearchHit]:
    """Flatten SERP items into hits.

    Accepts either flat hits ({title, url|link, snippet|description}) or
    actor pages that nest them under ``organicResults``.
    """
    hits: list[SearchHit] = []
    for raw in items:
        item = _require_mapping(raw)
        nested = item.get("organicResults")
        entries = nested if isinstance(nested, list) else [item]
        for entry in entries:
            entry = _require_mapping(entry)
            url = _text(entry, "url", "link", "href")
            title = _text(entry, "title")
            if not url or not title:
                continue
            hits.append(SearchHit(
                title=title,
                url=url,
                snippet=_text(entry, "snippet", "description", "body"),
                position=_int(pick(entry, "position")) or len(hits) + 1,
            ))
            if limit is not None and len(hits) >= limit:
                return hits
    return hits


# ---------------------------------------------------------------------------
# Places
# ---------------------------------------------------------------------------

def normalize_place(item: Any) -> PlaceRecord:
    """Google Maps actor item -> PlaceRecord."""
    item = _require_mapping(item)
    name = _text(item, "title", "name") or ""
    place_id = _text(item, "placeId", "place_id") or ""
    return PlaceRecord(
        id=f"gmap_{place_id or uuid.uuid4().hex[:12]}",
        name=name,
        company=name,
        address=_text(item, "address", "street") or "",
        phone=_text(item, "phone", "phoneUnformatted") or "",
        website=_text(item, "website") or "",
        email=_text(item, "email", "emails.0") or "",
        category=_text(item, "categoryName", "categories") or "",
        rating=_float(pick(item, "totalScore", "rating")),
        review_count=pick(item, "reviewsCount", "reviewCount", default=0),
        map_url=_text(item, "url", "googleMapsUrl") or "",
        place_id=place_id,
        latitude=_float(pick(item, "location.lat", "latitude")),
        longitude=_float(pick(item, "location.lng", "longitude")),
        social_media=PlaceSocialMedia(
            facebook=_text(item, "facebookUrl", "facebooks.0"),
            instagram=_text(item, "instagramUrl", "instagrams.0"),
            linkedin=_text(item, "linkedInUrl", "linkedIns.0"),
        ),
    )


def filter_places(
    places: list[PlaceRecord],
    has_website: bool = False,
    max_reviews: int | None = None,
) -> list[PlaceRecord]:
    """Post-filter normalized places; returns a new list, order preserved."""
    kept = list(places)
    if has_website:
        kept = [p for p in kept if p.website]
    if max_reviews is not None:
        kept = [p for p in kept if p.review_count <= max_reviews]
    return kept
