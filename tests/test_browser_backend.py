import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from conftest import FakeSessions, meta_selector
from prospect_research.browser.backend import AUTH_NOTE, BrowserAutomationBackend, _contact_page_url
from prospect_research.browser.session import BrowserLaunchError
from prospect_research.models import BackendName

PROFILE_URL = "https://www.linkedin.com/in/janedoe"

SITES = {
    PROFILE_URL: {
        "title": "Jane Doe | LinkedIn",
        "elements": {
            "h1": {"text": "  Jane Doe "},
            ".text-body-medium": {"text": "CTO at Acme"},
            ".text-body-small.inline": {"text": "Lyon, France"},
        },
    },
    "https://acme.com": {
        "title": "Acme Widgets",
        "body": "Reach us at hello@acme.com or +1 (555) 123-4567.",
        "elements": {
            "h1": {"text": "We make widgets"},
            meta_selector("description"): {"attrs": {"content": "Widgets since 1999"}},
        },
        "links": [
            "https://acme.com/about",
            "https://acme.com/contact-us",
            "https://www.linkedin.com/company/acme",
            "https://twitter.com/acme",
            "mailto:sales@acme.com?subject=Hi",
        ],
    },
    "https://acme.com/contact-us": {
        "title": "Contact",
        "body": "Support: support@acme.com",
        "links": ["tel:+15551112222", "https://facebook.com/acme"],
    },
}


def make_backend(sessions):
    return BrowserAutomationBackend(sessions, navigation_timeout_ms=15000, settle_ms=0)


@pytest.mark.asyncio
async def test_profile_fields_are_extracted():
    sessions = FakeSessions(SITES)
    result = await make_backend(sessions).lookup_profile(PROFILE_URL)

    assert result.success is True
    assert result.source == BackendName.PLAYWRIGHT
    assert result.actor_or_method_id == "lookup_profile"
    profile = result.data
    assert profile.name == "Jane Doe"
    assert profile.headline == "CTO at Acme"
    assert profile.location == "Lyon, France"
    assert profile.profile_url == PROFILE_URL
    assert result.note is None


@pytest.mark.asyncio
async def test_profile_selector_misses_are_none_not_errors():
    url = "https://www.linkedin.com/in/ghost"
    sessions = FakeSessions({url: {"elements": {"h1": {"text": "Ghost"}}}})
    result = await make_backend(sessions).lookup_profile(url)

    assert result.success is True
    assert result.data.name == "Ghost"
    assert result.data.headline is None
    assert result.data.about is None
    assert result.data.connections is None


@pytest.mark.asyncio
async def test_auth_wall_adds_note():
    url = "https://www.linkedin.com/in/private"
    sessions = FakeSessions({url: {"final_url": "https://www.linkedin.com/authwall?trk=x"}})
    result = await make_backend(sessions).lookup_profile(url)

    assert result.success is True
    assert result.note == AUTH_NOTE
    assert result.data.name is None


@pytest.mark.asyncio
async def test_website_fields_and_scheme():
    sessions = FakeSessions(SITES)
    result = await make_backend(sessions).lookup_website("acme.com")

    assert result.success is True
    site = result.data
    assert sessions.pages[0].visited == ["https://acme.com"]
    assert site.title == "Acme Widgets"
    assert site.description == "Widgets since 1999"
    assert site.h1 == "We make widgets"
    assert site.keywords is None
    assert site.emails == ["hello@acme.com"]
    assert site.phones == ["+1 (555) 123-4567"]
    assert site.social_links.linkedin == "https://www.linkedin.com/company/acme"
    assert site.social_links.twitter == "https://twitter.com/acme"
    assert site.social_links.facebook is None


@pytest.mark.asyncio
async def test_contacts_follow_contact_page():
    sessions = FakeSessions(SITES)
    result = await make_backend(sessions).lookup_contacts("https://acme.com")

    assert result.success is True
    contacts = result.data
    assert sessions.pages[0].visited == ["https://acme.com", "https://acme.com/contact-us"]
    assert contacts.emails == ["sales@acme.com", "hello@acme.com", "support@acme.com"]
    assert "+15551112222" in contacts.phones
    assert contacts.social_links.facebook == "https://facebook.com/acme"
    assert contacts.pages_scanned == ["https://acme.com", "https://acme.com/contact-us"]


@pytest.mark.asyncio
async def test_contacts_survive_broken_contact_page():
    sites = {"https://acme.com": {**SITES["https://acme.com"]}}
    sessions = FakeSessions(sites)
    result = await make_backend(sessions).lookup_contacts("acme.com")

    assert result.success is True
    assert result.data.pages_scanned == ["https://acme.com"]


@pytest.mark.asyncio
async def test_search_hits_are_capped():
    serp = [{"title": f"Hit {i}", "url": f"https://r{i}.example", "snippet": None} for i in range(8)]
    sessions = FakeSessions({"https://www.google.com/search?q=Jane+Doe+Acme": {"serp": serp}})
    backend = BrowserAutomationBackend(sessions, settle_ms=0, search_result_limit=3)

    result = await backend.lookup_search("Jane Doe Acme")

    assert result.success is True
    assert result.query == "Jane Doe Acme"
    assert [h.title for h in result.data] == ["Hit 0", "Hit 1", "Hit 2"]


@pytest.mark.asyncio
async def test_navigation_timeout_becomes_failed_result():
    sessions = FakeSessions(goto_error=PlaywrightTimeoutError("Timeout 15000ms exceeded"))
    result = await make_backend(sessions).lookup_website("https://slow.example")

    assert result.success is False
    assert result.error == "Navigation timeout after 15s: https://slow.example"
    assert result.data is None
    assert sessions.closed == sessions.opened == 1


@pytest.mark.asyncio
async def test_unreachable_site_becomes_failed_result():
    sessions = FakeSessions({})
    result = await make_backend(sessions).lookup_search("nobody")

    assert result.success is False
    assert "ERR_NAME_NOT_RESOLVED" in result.error
    assert result.query == "nobody"


@pytest.mark.asyncio
async def test_launch_failure_is_reported_not_raised():
    sessions = FakeSessions(launch_error=BrowserLaunchError("Browser launch failed: no chromium"))
    backend = make_backend(sessions)

    assert await backend.check_ready() == "Browser launch failed: no chromium"
    result = await backend.lookup_profile(PROFILE_URL)
    assert result.success is False
    assert result.error == "Browser launch failed: no chromium"
    assert sessions.opened == 0


@pytest.mark.asyncio
async def test_each_lookup_gets_its_own_context_and_closes_it():
    sessions = FakeSessions(SITES)
    backend = make_backend(sessions)

    await backend.lookup_profile(PROFILE_URL)
    await backend.lookup_website("acme.com")
    await backend.lookup_contacts("acme.com")
    await backend.lookup_website("https://missing.example")

    assert sessions.opened == 4
    assert sessions.closed == 4
    assert len({id(p) for p in sessions.pages}) == 4


def test_contact_page_url_stays_on_site():
    hrefs = [
        "mailto:a@acme.com",
        "https://other.com/contact",
        "https://www.acme.com/about",
        "https://www.acme.com/contact",
    ]
    assert _contact_page_url("https://acme.com/", hrefs) == "https://www.acme.com/contact"
    assert _contact_page_url("https://acme.com/contact", ["https://acme.com/contact/"]) is None
