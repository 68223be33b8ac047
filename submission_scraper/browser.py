"""Playwright browser with a pool of exclusive pages.

A page is a browser session that only one worker may drive at a time. Workers borrow
one with ``session()`` and hand it back when their chunk is done.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from .config import BrowserConfig

logger = logging.getLogger("submission_scraper")

# Wide enough for the desktop table layout of the listing
VIEWPORT = {"width": 1600, "height": 1000}


class SessionPool:
    def __init__(self, config: BrowserConfig):
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._idle: List[Page] = []
        self._created = 0

    async def start(self):
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.config.browser)
        self._browser = await launcher.launch(
            headless=self.config.headless,
            args=self.config.args,
        )
        self._context = await self._browser.new_context(
            viewport=VIEWPORT,
            ignore_https_errors=True,
            accept_downloads=True,
        )
        logger.info(f"Launched {self.config.browser} (headless={self.config.headless})")

    async def acquire(self) -> Page:
        if self._context is None:
            raise RuntimeError("SessionPool.start() must be called before acquire()")
        if self._idle:
            return self._idle.pop()
        page = await self._context.new_page()
        page.set_default_timeout(self.config.timeout_ms)
        page.set_default_navigation_timeout(self.config.timeout_ms)
        self._created += 1
        logger.debug(f"Opened browser page #{self._created}")
        return page

    def release(self, page: Page):
        if page.is_closed():
            return
        self._idle.append(page)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        page = await self.acquire()
        try:
            yield page
        finally:
            self.release(page)

    async def close(self):
        self._idle.clear()
        if self._context is not None:
            await self._context.close()
            self._context = None
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> "SessionPool":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
