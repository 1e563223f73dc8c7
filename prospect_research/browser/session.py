"""Lifecycle of the single shared Chromium process used for research."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class BrowserLaunchError(RuntimeError):
    """Chromium could not be started."""


class BrowserSessionManager:
    """Owns one browser process; hands out a fresh context per lookup.

    The process starts on the first ``acquire()`` and is reused until
    ``close()``. Each ``isolated_page()`` gets its own BrowserContext, so
    concurrent lookups never see each other's cookies or storage.
    """

    def __init__(self, headless: bool = True, user_agent: str = USER_AGENT):
        self.headless = headless
        self.user_agent = user_agent
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def acquire(self) -> Browser:
        async with self._lock:
            if self.is_running:
                return self._browser  # type: ignore[return-value]
            await self._shutdown()  # drop a disconnected browser, if any
            logger.info("Launching Chromium (headless=%s)", self.headless)
            try:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=LAUNCH_ARGS,
                )
            except Exception as e:
                await self._shutdown()
                raise BrowserLaunchError(f"Browser launch failed: {e}") from e
            return self._browser

    @asynccontextmanager
    async def isolated_page(self) -> AsyncIterator[Page]:
        browser = await self.acquire()
        context = await browser.new_context(user_agent=self.user_agent)
        try:
            page = await context.new_page()
            yield page
        finally:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.debug("Context close failed: %s", e)

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                logger.info("Closing Chromium")
            await self._shutdown()

    async def _shutdown(self) -> None:
        browser, pw = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.debug("Browser close failed: %s", e)
        if pw is not None:
            await pw.stop()

    async def __aenter__(self) -> BrowserSessionManager:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
