"""
Shared browser engine and per-request page sessions.

One Chromium process is launched lazily and shared by every request.
Each request gets its own isolated browser context, which is always
closed when the request finishes.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Set

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from renderproxy.config import Settings, get_settings
from renderproxy.exceptions import CapacityExceededError, EngineInitError, PageOpenError

logger = logging.getLogger(__name__)

SANDBOX_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
]

# Hardened flag set for containers and other constrained hosts
FULL_LAUNCH_ARGS = SANDBOX_ARGS + [
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-features=TranslateUI",
    "--disable-component-extensions-with-background-pages",
    "--disable-ipc-flooding-protection",
]


class BrowserSessionManager:
    """Owns the shared Browser handle and hands out isolated pages."""

    def __init__(self, settings: Optional[Settings] = None, playwright_factory=async_playwright):
        self.settings = settings or get_settings()
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(self.settings.MAX_CONCURRENT_PAGES)
        self._contexts: Set[BrowserContext] = set()

    @property
    def is_connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def open_page_count(self) -> int:
        return len(self._contexts)

    async def acquire_engine(self) -> Browser:
        """Return the live shared browser, launching it if needed."""
        browser = self._browser
        if browser is not None and browser.is_connected():
            return browser

        async with self._launch_lock:
            # Another request may have launched while we waited
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            self._browser = None
            self._browser = await self._launch()
            return self._browser

    async def _launch(self) -> Browser:
        if self._playwright is None:
            try:
                self._playwright = await self._playwright_factory().start()
            except Exception as e:
                logger.error(f"Failed to start Playwright driver: {e}")
                raise EngineInitError(f"Unable to start browser driver: {e}") from e

        chromium = self._playwright.chromium
        try:
            browser = await chromium.launch(
                headless=self.settings.BROWSER_HEADLESS,
                executable_path=self.settings.BROWSER_EXECUTABLE_PATH,
                args=FULL_LAUNCH_ARGS,
            )
            logger.info("Browser initialized successfully")
        except Exception as e:
            logger.warning(f"Full browser launch failed, trying fallback configuration: {e}")
            try:
                browser = await chromium.launch(
                    headless=self.settings.BROWSER_HEADLESS,
                    args=SANDBOX_ARGS,
                )
                logger.info("Browser initialized with fallback configuration")
            except Exception as fallback_error:
                logger.error(f"Fallback browser launch also failed: {fallback_error}")
                await self._stop_driver()
                raise EngineInitError(
                    "Unable to initialize browser for proxy functionality"
                ) from fallback_error

        browser.on("disconnected", self._on_disconnected)
        return browser

    def _on_disconnected(self, browser: Browser) -> None:
        if self._browser is browser:
            self._browser = None
            logger.warning("Browser disconnected, will reinitialize on next request")

    async def open_page(self, **context_options) -> Page:
        """Create an isolated context with a single page."""
        browser = await self.acquire_engine()
        context = None
        try:
            context = await browser.new_context(**context_options)
            page = await context.new_page()
        except Exception as e:
            logger.error(f"Failed to open page: {e}")
            if context is not None:
                await self._close_context(context)
            raise PageOpenError(f"Failed to open browser page: {e}") from e

        self._contexts.add(context)
        return page

    async def close_page(self, page: Page) -> None:
        """Close the page's context. Safe to call more than once."""
        context = page.context
        if context not in self._contexts:
            return
        self._contexts.discard(context)
        await self._close_context(context)

    async def _close_context(self, context: BrowserContext) -> None:
        try:
            await context.close()
        except Exception as e:
            logger.warning(f"Error closing browser context: {e}")

    @asynccontextmanager
    async def page(self, **context_options):
        """Hold a page slot and a page for the duration of the block."""
        try:
            await asyncio.wait_for(
                self._slots.acquire(),
                timeout=self.settings.PAGE_QUEUE_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"No page slot freed within {self.settings.PAGE_QUEUE_TIMEOUT_SECONDS}s "
                f"({self.open_page_count} pages open)"
            )
            raise CapacityExceededError("Too many pages are being rendered")

        try:
            page = await self.open_page(**context_options)
            try:
                yield page
            finally:
                await self.close_page(page)
        finally:
            self._slots.release()

    async def shutdown(self) -> None:
        """Close every open context, the browser and the driver."""
        for context in list(self._contexts):
            self._contexts.discard(context)
            await self._close_context(context)

        browser, self._browser = self._browser, None
        if browser is not None:
            try:
                await browser.close()
                logger.info("Browser closed")
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")

        await self._stop_driver()

    async def _stop_driver(self) -> None:
        playwright, self._playwright = self._playwright, None
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright driver: {e}")


# Singleton instance
browser_manager = BrowserSessionManager()


def get_browser_manager() -> BrowserSessionManager:
    """Dependency for getting the shared browser manager."""
    return browser_manager
