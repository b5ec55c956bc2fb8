"""Drives a page through a bounded navigation and captures the result."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from renderproxy.config import Settings
from renderproxy.exceptions import FailureKind

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

FRAME_BLOCKING_HEADERS = ("x-frame-options", "content-security-policy")


class WaitStrategy(str, Enum):
    NETWORK_IDLE = "networkidle"
    DOM_CONTENT_LOADED = "domcontentloaded"


class CaptureMode(str, Enum):
    HTML = "html"
    SCREENSHOT = "screenshot"
    NONE = "none"


@dataclass(frozen=True)
class Viewport:
    width: int = 1280
    height: int = 720
    scale: float = 1.0


@dataclass(frozen=True)
class NavigationProfile:
    wait_strategy: WaitStrategy
    navigation_timeout_ms: int
    settle_delay_ms: int
    content_wait_timeout_ms: int
    user_agent: str
    viewport: Viewport = field(default_factory=Viewport)
    extra_headers: Dict[str, str] = field(default_factory=dict)

    def context_options(self) -> dict:
        """Options that must be fixed when the browser context is created."""
        return {
            "user_agent": self.user_agent,
            "device_scale_factor": self.viewport.scale,
        }


def thorough_profile(settings: Settings) -> NavigationProfile:
    """Network-idle wait with a long settle delay, for fully rendered content."""
    return NavigationProfile(
        wait_strategy=WaitStrategy.NETWORK_IDLE,
        navigation_timeout_ms=settings.NAVIGATION_TIMEOUT_MS,
        settle_delay_ms=settings.SETTLE_DELAY_MS,
        content_wait_timeout_ms=settings.CONTENT_WAIT_TIMEOUT_MS,
        user_agent=settings.USER_AGENT,
        viewport=Viewport(settings.VIEWPORT_WIDTH, settings.VIEWPORT_HEIGHT, settings.DEVICE_SCALE_FACTOR),
        extra_headers=dict(BROWSER_HEADERS),
    )


def fast_profile(settings: Settings) -> NavigationProfile:
    """DOM-content-loaded wait with short timeouts, for reachability checks."""
    return NavigationProfile(
        wait_strategy=WaitStrategy.DOM_CONTENT_LOADED,
        navigation_timeout_ms=settings.PROBE_TIMEOUT_MS,
        settle_delay_ms=settings.PROBE_SETTLE_DELAY_MS,
        content_wait_timeout_ms=min(settings.CONTENT_WAIT_TIMEOUT_MS, settings.PROBE_TIMEOUT_MS),
        user_agent=settings.USER_AGENT,
        viewport=Viewport(settings.VIEWPORT_WIDTH, settings.VIEWPORT_HEIGHT, settings.DEVICE_SCALE_FACTOR),
    )


@dataclass(frozen=True)
class RenderSuccess:
    final_url: str
    html: Optional[str] = None
    image: Optional[bytes] = None


@dataclass(frozen=True)
class RenderFailure:
    kind: FailureKind
    message: str


RenderResult = Union[RenderSuccess, RenderFailure]


def _log_frame_blocking(response: Response) -> None:
    headers = response.headers
    if any(name in headers for name in FRAME_BLOCKING_HEADERS):
        logger.debug(f"Detected iframe-blocking headers from: {response.url}")


async def render(
    page: Page,
    url: str,
    profile: NavigationProfile,
    capture: CaptureMode = CaptureMode.HTML,
) -> RenderResult:
    """
    Navigate ``page`` to ``url`` and capture the rendered result.

    Timeouts and Playwright errors during navigation, settling or capture
    become RenderFailure values. Other exceptions are left to the caller.
    """
    headers = dict(profile.extra_headers)
    headers.setdefault("User-Agent", profile.user_agent)
    await page.set_extra_http_headers(headers)
    await page.set_viewport_size({"width": profile.viewport.width, "height": profile.viewport.height})
    page.on("response", _log_frame_blocking)

    try:
        await page.goto(
            url,
            wait_until=profile.wait_strategy.value,
            timeout=profile.navigation_timeout_ms,
        )
    except PlaywrightTimeoutError as e:
        logger.warning(f"Navigation to {url} timed out after {profile.navigation_timeout_ms}ms")
        return RenderFailure(FailureKind.NAVIGATION_TIMEOUT, str(e))
    except PlaywrightError as e:
        logger.warning(f"Navigation to {url} failed: {e}")
        return RenderFailure(FailureKind.NAVIGATION_ERROR, str(e))

    try:
        if profile.settle_delay_ms > 0:
            await page.wait_for_timeout(profile.settle_delay_ms)

        try:
            await page.wait_for_selector("body", timeout=profile.content_wait_timeout_ms)
        except PlaywrightError:
            # Continue if selector wait fails
            logger.debug(f"No body element on {url} after {profile.content_wait_timeout_ms}ms")

        final_url = page.url
        if capture == CaptureMode.HTML:
            return RenderSuccess(final_url=final_url, html=await page.content())
        if capture == CaptureMode.SCREENSHOT:
            image = await page.screenshot(type="png", full_page=False)
            return RenderSuccess(final_url=final_url, image=image)
        return RenderSuccess(final_url=final_url)
    except PlaywrightError as e:
        logger.warning(f"Capturing {url} failed: {e}")
        return RenderFailure(FailureKind.NAVIGATION_ERROR, str(e))
