"""Pytest configuration and shared fixtures.

The browser engine is replaced by an in-memory stand-in for Playwright's
driver, so tests never launch Chromium or touch the network.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from playwright.async_api import Error as PlaywrightError

from renderproxy.config import Settings, get_settings
from renderproxy.main import app
from renderproxy.services.browser_manager import BrowserSessionManager, get_browser_manager

EXAMPLE_HTML = (
    "<html><head><title>Example Domain</title>"
    '<meta http-equiv="Content-Security-Policy" content="frame-ancestors \'none\'">'
    "</head><body>"
    "<script>if (top !== self) { top.location = self.location; }</script>"
    '<a href="/more">More information</a>'
    "</body></html>"
)
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDRfake-image-data"


@dataclass
class FakeSite:
    """What the fake browser sees when it loads a page."""

    html: str = EXAMPLE_HTML
    image: bytes = PNG_BYTES
    goto_error: Optional[Exception] = None
    capture_error: Optional[Exception] = None
    settle_error: Optional[Exception] = None
    new_page_error: Optional[Exception] = None
    body_missing: bool = False


class FakePage:
    def __init__(self, context, site: FakeSite):
        self.context = context
        self.site = site
        self.url = "about:blank"
        self.extra_headers = {}
        self.viewport = None
        self.handlers = {}
        self.goto_calls = []
        self.waited_ms = []

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    async def set_extra_http_headers(self, headers):
        self.extra_headers = dict(headers)

    async def set_viewport_size(self, size):
        self.viewport = dict(size)

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append((url, wait_until, timeout))
        if self.site.goto_error is not None:
            raise self.site.goto_error
        self.url = url

    async def wait_for_timeout(self, timeout):
        self.waited_ms.append(timeout)
        if self.site.settle_error is not None:
            raise self.site.settle_error

    async def wait_for_selector(self, selector, timeout=None):
        if self.site.body_missing:
            raise PlaywrightError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def content(self):
        if self.site.capture_error is not None:
            raise self.site.capture_error
        return self.site.html

    async def screenshot(self, type="png", full_page=False):
        if self.site.capture_error is not None:
            raise self.site.capture_error
        return self.site.image


class FakeContext:
    def __init__(self, browser, options):
        self.browser = browser
        self.options = options
        self.pages = []
        self.close_count = 0

    @property
    def closed(self):
        return self.close_count > 0

    async def new_page(self):
        if self.browser.site.new_page_error is not None:
            raise self.browser.site.new_page_error
        page = FakePage(self, self.browser.site)
        self.pages.append(page)
        return page

    async def close(self):
        self.close_count += 1


class FakeBrowser:
    version = "120.0.6099.28"

    def __init__(self, site: FakeSite, launch_options):
        self.site = site
        self.launch_options = launch_options
        self.contexts = []
        self.handlers = {}
        self.connected = True

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def is_connected(self):
        return self.connected

    async def new_context(self, **options):
        context = FakeContext(self, options)
        self.contexts.append(context)
        return context

    def disconnect(self):
        """Simulate the browser process dying."""
        self.connected = False
        for handler in self.handlers.get("disconnected", []):
            handler(self)

    async def close(self):
        if self.connected:
            self.disconnect()


class FakeChromium:
    def __init__(self, site: FakeSite):
        self.site = site
        self.launches = []
        self.browsers = []
        self.failures = 0  # number of upcoming launches that fail

    async def launch(self, **options):
        self.launches.append(options)
        # Yield so concurrent callers can interleave
        await asyncio.sleep(0.01)
        if self.failures > 0:
            self.failures -= 1
            raise PlaywrightError("Failed to launch chromium: executable doesn't exist")
        browser = FakeBrowser(self.site, options)
        self.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, site: FakeSite):
        self.chromium = FakeChromium(site)
        self.starts = 0
        self.stopped = False
        self.stop_error = None

    # async_playwright() returns an object whose start() yields the driver
    def __call__(self):
        return self

    async def start(self):
        self.starts += 1
        return self

    async def stop(self):
        self.stopped = True
        if self.stop_error is not None:
            raise self.stop_error


@pytest.fixture
def test_settings():
    """Settings with no settle delays and a small page limit."""
    return Settings(
        SETTLE_DELAY_MS=0,
        PROBE_SETTLE_DELAY_MS=0,
        MAX_CONCURRENT_PAGES=2,
        PAGE_QUEUE_TIMEOUT_SECONDS=0.2,
    )


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def fake_playwright(site):
    return FakePlaywright(site)


@pytest.fixture
def manager(test_settings, fake_playwright):
    return BrowserSessionManager(test_settings, playwright_factory=fake_playwright)


@pytest.fixture
def client(manager, test_settings):
    """Create a test client wired to the fake browser."""
    app.dependency_overrides[get_browser_manager] = lambda: manager
    app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
