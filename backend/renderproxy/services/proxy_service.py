import logging
from typing import Tuple, Optional

from renderproxy.config import Settings
from renderproxy.exceptions import FailureKind, ProxyError, TransformError
from renderproxy.services.browser_manager import BrowserSessionManager
from renderproxy.services.content_transformer import SanitizedDocument, sanitize
from renderproxy.services.navigator import (
    CaptureMode,
    NavigationProfile,
    RenderFailure,
    RenderResult,
    RenderSuccess,
    fast_profile,
    render,
    thorough_profile,
)
from renderproxy.services.url_validator import url_origin

logger = logging.getLogger(__name__)


class ProxyService:
    """Render pipeline shared by the JSON, direct-embed and probe endpoints."""

    @staticmethod
    async def render_target(
        manager: BrowserSessionManager,
        url: str,
        profile: NavigationProfile,
        capture: CaptureMode,
    ) -> RenderResult:
        """Render ``url`` on a fresh page; every failure comes back as RenderFailure."""
        try:
            async with manager.page(**profile.context_options()) as page:
                return await render(page, url, profile, capture)
        except ProxyError as e:
            logger.error(f"Render of {url} failed ({e.kind.value}): {e}")
            return RenderFailure(e.kind, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error rendering {url}")
            return RenderFailure(FailureKind.INTERNAL, str(e) or type(e).__name__)

    @staticmethod
    async def render_html(
        manager: BrowserSessionManager,
        settings: Settings,
        url: str,
    ) -> Tuple[RenderResult, Optional[SanitizedDocument]]:
        """Render ``url`` and sanitize it for embedding."""
        logger.info(f"Proxying request for: {url}")
        result = await ProxyService.render_target(
            manager, url, thorough_profile(settings), CaptureMode.HTML
        )
        if not isinstance(result, RenderSuccess):
            return result, None
        return result, ProxyService.sanitize_content(result.html, url)

    @staticmethod
    def sanitize_content(raw_html: Optional[str], url: str) -> SanitizedDocument:
        """Sanitize rendered HTML, falling back to the raw content on failure."""
        origin = url_origin(url)
        try:
            return sanitize(raw_html, origin)
        except TransformError as e:
            logger.warning(f"Serving unsanitized content for {url}: {e}")
        except Exception:
            logger.exception(f"Unexpected error sanitizing content for {url}")
        return SanitizedDocument(html=raw_html if isinstance(raw_html, str) else "", origin=origin, sanitized=False)

    @staticmethod
    async def render_screenshot(
        manager: BrowserSessionManager,
        settings: Settings,
        url: str,
    ) -> RenderResult:
        """Render ``url`` and capture a PNG of the viewport."""
        logger.info(f"Taking screenshot for: {url}")
        return await ProxyService.render_target(
            manager, url, thorough_profile(settings), CaptureMode.SCREENSHOT
        )

    @staticmethod
    async def probe(
        manager: BrowserSessionManager,
        settings: Settings,
        url: str,
    ) -> RenderResult:
        """Check that ``url`` loads, using the fast navigation profile."""
        logger.info(f"Probing: {url}")
        return await ProxyService.render_target(
            manager, url, fast_profile(settings), CaptureMode.NONE
        )
