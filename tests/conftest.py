"""Shared fakes: a scriptable research backend, Apify API, and Playwright pages."""

import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest

from prospect_research.apify.backend import ActorPlatformBackend
from prospect_research.db.database import Database
from prospect_research.db.migrations import run_migrations
from prospect_research.db.prospects import ProspectRepository
from prospect_research.models import BackendName, LookupResult
from prospect_research.settings import SettingsStore


# ---------------------------------------------------------------------------
# Research backend
# ---------------------------------------------------------------------------

class FakeBackend:
    """In-memory ResearchBackend; records calls and peak concurrency."""

    def __init__(self, name=BackendName.PLAYWRIGHT, fail=(), raise_on=(), delay=0.0, not_ready=None):
        self.name = name
        self.fail = set(fail)
        self.raise_on = set(raise_on)
        self.delay = delay
        self.not_ready = not_ready
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def check_ready(self):
        return self.not_ready

    async def _lookup(self, method, arg, data):
        self.calls.append((method, arg))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if method in self.raise_on:
                raise RuntimeError(f"{method} exploded")
            if method in self.fail:
                return LookupResult.failed(self.name, method, f"{method} failed")
            return LookupResult.ok(self.name, method, data)
        finally:
            self.in_flight -= 1

    async def lookup_profile(self, url):
        return await self._lookup("lookup_profile", url, {"name": "Jane Doe"})

    async def lookup_website(self, url):
        return await self._lookup("lookup_website", url, {"title": "Acme"})

    async def lookup_contacts(self, url):
        return await self._lookup("lookup_contacts", url, {"emails": ["hello@acme.com"]})

    async def lookup_search(self, query):
        return await self._lookup("lookup_search", query, [{"title": "Jane at Acme", "url": "https://acme.com"}])

    @property
    def methods_called(self):
        return sorted(m for m, _ in self.calls)


# ---------------------------------------------------------------------------
# Apify API
# ---------------------------------------------------------------------------

class FakeApify:
    """httpx.MockTransport handler emulating runs, run polling and datasets."""

    def __init__(self, items=None, start_status="SUCCEEDED", final_status="SUCCEEDED", http_status=None):
        self.items = items or {}          # actor path (user~name) -> dataset items
        self.start_status = start_status
        self.final_status = final_status
        self.http_status = http_status    # force every response to this status
        self.requests = []
        self.inputs = {}
        self._runs = {}

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.http_status:
            return httpx.Response(self.http_status, json={"error": {"message": "nope"}})

        path = request.url.path
        if request.method == "POST" and path.endswith("/runs"):
            actor = path.split("/acts/")[1].rsplit("/runs", 1)[0]
            self.inputs[actor] = json.loads(request.content)
            run_id = f"run{len(self._runs) + 1}"
            self._runs[run_id] = actor
            return httpx.Response(201, json={"data": self._run(run_id, self.start_status)})
        if "/actor-runs/" in path:
            run_id = path.rsplit("/", 1)[1]
            return httpx.Response(200, json={"data": self._run(run_id, self.final_status)})
        if "/datasets/" in path:
            run_id = path.split("/datasets/")[1].split("/")[0].removeprefix("ds-")
            return httpx.Response(200, json=self.items.get(self._runs[run_id], []))
        return httpx.Response(404, json={"error": {"message": f"no route {path}"}})

    def _run(self, run_id, status):
        return {
            "id": run_id,
            "status": status,
            "statusMessage": "actor crashed" if status == "FAILED" else None,
            "defaultDatasetId": f"ds-{run_id}",
        }


@pytest.fixture
def settings_store(tmp_path):
    store = SettingsStore(tmp_path / "settings.json")
    store.update({"apifyApiKey": "apify_api_test_token"})
    return store


@pytest.fixture
def empty_settings(tmp_path):
    return SettingsStore(tmp_path / "missing" / "settings.json")


def make_apify_backend(store, fake, **kwargs):
    return ActorPlatformBackend(store, transport=fake.transport, **kwargs)


# ---------------------------------------------------------------------------
# Prospect store
# ---------------------------------------------------------------------------

@pytest.fixture
def prospects(tmp_path):
    db = Database(str(tmp_path / "prospects.db"))
    db.connect()
    run_migrations(db)
    yield ProspectRepository(db)
    db.close()


# ---------------------------------------------------------------------------
# Playwright fakes
# ---------------------------------------------------------------------------

def meta_selector(name):
    return f'meta[name="{name}"], meta[property="{name}"]'


class FakeLocator:
    def __init__(self, element):
        self.element = element

    @property
    def first(self):
        return self

    async def count(self):
        return 1 if self.element is not None else 0

    async def text_content(self, timeout=None):
        return self.element.get("text")

    async def get_attribute(self, name, timeout=None):
        return self.element.get("attrs", {}).get(name)


class FakePage:
    """Serves canned sites: {url: {"title", "body", "elements", "links", "serp", "final_url"}}."""

    def __init__(self, sites, goto_error=None):
        self.sites = sites
        self.goto_error = goto_error
        self.url = "about:blank"
        self._site = {}
        self.visited = []

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        if url not in self.sites:
            from playwright.async_api import Error
            raise Error(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self._site = self.sites[url]
        self.url = self._site.get("final_url", url)

    async def wait_for_timeout(self, ms):
        await asyncio.sleep(0)

    async def title(self):
        return self._site.get("title", "")

    async def inner_text(self, selector, timeout=None):
        return self._site.get("body", "")

    async def eval_on_selector_all(self, selector, expression, arg=None):
        if selector == ".g":
            entries = self._site.get("serp", [])
            return entries[:arg] if arg else entries
        return list(self._site.get("links", []))

    def locator(self, selector):
        return FakeLocator(self._site.get("elements", {}).get(selector))


class FakeSessions:
    """Stands in for BrowserSessionManager; one FakePage per isolated context."""

    def __init__(self, sites=None, goto_error=None, launch_error=None):
        self.sites = sites or {}
        self.goto_error = goto_error
        self.launch_error = launch_error
        self.opened = 0
        self.closed = 0
        self.pages = []

    async def acquire(self):
        if self.launch_error is not None:
            raise self.launch_error
        return object()

    @asynccontextmanager
    async def isolated_page(self):
        await self.acquire()
        self.opened += 1
        page = FakePage(self.sites, goto_error=self.goto_error)
        self.pages.append(page)
        try:
            yield page
        finally:
            self.closed += 1
