from fastapi import APIRouter, Depends, Query, Response, status
from typing import Optional
import logging

from renderproxy.config import Settings, get_settings
from renderproxy.exceptions import InvalidUrlError, MissingUrlError
from renderproxy.schemas import ProxyFormat, TargetRequest
from renderproxy.services.browser_manager import BrowserSessionManager, get_browser_manager
from renderproxy.services.navigator import RenderFailure
from renderproxy.services.proxy_service import ProxyService
from renderproxy.services import response_formatter as formatter
from renderproxy.services.url_validator import validate_url

router = APIRouter(prefix="/proxy", tags=["Proxy"])
logger = logging.getLogger(__name__)


# Registered before the GET route so HEAD requests are not answered by it
@router.head("")
async def probe_website(
    url: Optional[str] = Query(None, description="The URL to check"),
    manager: BrowserSessionManager = Depends(get_browser_manager),
    settings: Settings = Depends(get_settings),
):
    """
    Check that a website loads, without rendering it.

    Returns 200 when navigation succeeds, 400 for an invalid URL and 502
    when the website could not be loaded. No body is sent.
    """
    try:
        target_url = validate_url(url)
    except InvalidUrlError:
        return Response(status_code=status.HTTP_400_BAD_REQUEST)

    result = await ProxyService.probe(manager, settings, target_url)
    if isinstance(result, RenderFailure):
        return Response(status_code=formatter.status_for(result.kind))
    return Response(status_code=status.HTTP_200_OK)


@router.get("")
async def proxy_website(
    url: Optional[str] = Query(None, description="The URL to visit"),
    format: ProxyFormat = Query(ProxyFormat.HTML, description="html or screenshot"),
    manager: BrowserSessionManager = Depends(get_browser_manager),
    settings: Settings = Depends(get_settings),
):
    """
    Render a website in the headless browser.

    - **url**: Target URL; `https://` is assumed when no scheme is given
    - **format**: `html` returns sanitized markup, `screenshot` a PNG data URI
    """
    try:
        target = TargetRequest(url=validate_url(url), format=format)
    except InvalidUrlError as e:
        logger.info(f"Rejected proxy request for {url!r}: {e}")
        return formatter.validation_error_response(str(e))

    if target.format == ProxyFormat.SCREENSHOT:
        result = await ProxyService.render_screenshot(manager, settings, target.url)
        if isinstance(result, RenderFailure):
            return formatter.error_response(result, target.url, target.format)
        return formatter.screenshot_response(target.url, result.image)

    result, document = await ProxyService.render_html(manager, settings, target.url)
    if isinstance(result, RenderFailure):
        return formatter.error_response(result, target.url, target.format)
    return formatter.content_response(target.url, document)


@router.get("/iframe")
async def proxy_website_iframe(
    url: Optional[str] = Query(None, description="The URL to visit"),
    manager: BrowserSessionManager = Depends(get_browser_manager),
    settings: Settings = Depends(get_settings),
):
    """
    Render a website and return the sanitized HTML directly, with headers
    that allow it to be loaded inside an iframe.
    """
    try:
        target_url = validate_url(url)
    except InvalidUrlError as e:
        logger.info(f"Rejected iframe request for {url!r}: {e}")
        return formatter.embed_validation_error_response(missing=isinstance(e, MissingUrlError))

    result, document = await ProxyService.render_html(manager, settings, target_url)
    if isinstance(result, RenderFailure):
        return formatter.embed_error_response(result, target_url)
    return formatter.embed_response(document)
