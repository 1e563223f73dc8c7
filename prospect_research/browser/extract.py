"""Best-effort field extraction from a rendered Playwright page.

Every helper returns None (or an empty list) when nothing matches; a
selector miss is never an error.
"""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

logger = logging.getLogger(__name__)

FIELD_TIMEOUT_MS = 1000

HREFS_JS = "els => els.map(e => e.href).filter(Boolean)"

SERP_JS = """
(els, limit) => els.slice(0, limit).map(el => {
    const title = el.querySelector('h3');
    const link = el.querySelector('a[href]');
    const snippet = el.querySelector('.VwiC3b');
    return {
        title: title ? title.textContent.trim() : null,
        url: link ? link.href : null,
        snippet: snippet ? snippet.textContent.trim() : null,
    };
})
"""


async def first_text(page: Page, *selectors: str, limit: int | None = None) -> str | None:
    """Text of the first element matching any selector, in priority order."""
    for selector in selectors:
        try:
            locator = page.locator(selector).first
            if not await locator.count():
                continue
            text = await locator.text_content(timeout=FIELD_TIMEOUT_MS)
        except PlaywrightError as e:
            logger.debug("Selector %s unreadable: %s", selector, e)
            continue
        text = (text or "").strip()
        if text:
            return text[:limit] if limit else text
    return None


async def meta_content(page: Page, *names: str) -> str | None:
    for name in names:
        selector = f'meta[name="{name}"], meta[property="{name}"]'
        try:
            locator = page.locator(selector).first
            if not await locator.count():
                continue
            content = await locator.get_attribute("content", timeout=FIELD_TIMEOUT_MS)
        except PlaywrightError as e:
            logger.debug("Meta %s unreadable: %s", name, e)
            continue
        if content and content.strip():
            return content.strip()
    return None


async def page_title(page: Page) -> str | None:
    try:
        title = await page.title()
    except PlaywrightError:
        return None
    return title.strip() or None


async def body_text(page: Page) -> str:
    try:
        return await page.inner_text("body", timeout=FIELD_TIMEOUT_MS)
    except PlaywrightError as e:
        logger.debug("Body text unavailable on %s: %s", page.url, e)
        return ""


async def link_hrefs(page: Page, selector: str = "a[href]") -> list[str]:
    try:
        return await page.eval_on_selector_all(selector, HREFS_JS)
    except PlaywrightError as e:
        logger.debug("Links unavailable on %s: %s", page.url, e)
        return []


async def serp_entries(page: Page, limit: int) -> list[dict]:
    """Raw organic results from a Google results page."""
    try:
        return await page.eval_on_selector_all(".g", SERP_JS, limit)
    except PlaywrightError as e:
        logger.debug("SERP entries unavailable: %s", e)
        return []
