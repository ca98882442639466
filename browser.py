# browser.py
"""
Thin wrapper around Playwright's async API.

A BrowserSession is one browser with one page. Callers get it from
BrowserFactory.session(), which always closes the browser on exit. Rendered
pages are handed back as HTML (see BrowserSession.content) and parsed with
BeautifulSoup by the scrapers.
"""
import random
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

from playwright.async_api import async_playwright, Error as PlaywrightError

from errors import NavigationError
from menu_selectors import NAVIGATION_TIMEOUT_MS, WAIT_UNTIL, USER_AGENTS

logger = logging.getLogger(__name__)


@dataclass
class BrowserConfig:
    headless: bool = True
    navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS
    wait_until: str = WAIT_UNTIL
    user_agent: Optional[str] = None
    viewport: dict = field(default_factory=lambda: {"width": 1280, "height": 720})


class BrowserSession:
    def __init__(self, playwright, browser, page, config: BrowserConfig):
        self._playwright = playwright
        self._browser = browser
        self.page = page
        self.config = config
        self.closed = False

    async def navigate(self, url: str) -> None:
        """Loads a URL and waits for network idle. Non-2xx responses raise NavigationError."""
        logger.debug(f"Navigating to {url}")
        try:
            response = await self.page.goto(
                url,
                wait_until=self.config.wait_until,
                timeout=self.config.navigation_timeout_ms,
            )
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e
        if response is None:
            raise NavigationError(url, "no response")
        if not response.ok:
            raise NavigationError(url, f"HTTP {response.status}")

    async def content(self) -> str:
        return await self.page.content()

    async def count(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def click(self, selector: str, index: int = 0) -> None:
        try:
            await self.page.locator(selector).nth(index).click()
        except PlaywrightError as e:
            raise NavigationError(self.page.url, f"click on {selector!r}[{index}] failed: {e}") from e

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


class BrowserFactory:
    """Opens one fresh browser per session; sessions are never shared."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()

    async def open(self) -> BrowserSession:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=self.config.headless)
            context = await browser.new_context(
                user_agent=self.config.user_agent or random.choice(USER_AGENTS),
                viewport=self.config.viewport,
            )
            page = await context.new_page()
        except Exception:
            await playwright.stop()
            raise
        page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        return BrowserSession(playwright, browser, page, self.config)

    @asynccontextmanager
    async def session(self):
        session = await self.open()
        try:
            yield session
        finally:
            await session.close()
