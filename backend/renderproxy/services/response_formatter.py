"""Maps render outcomes onto JSON envelopes or embeddable HTML documents."""

import base64
import html
from typing import Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse

from renderproxy.exceptions import FailureKind
from renderproxy.schemas.proxy import (
    ProxyContentResponse,
    ProxyErrorResponse,
    ProxyFormat,
    ProxyScreenshotResponse,
)
from renderproxy.services.content_transformer import SanitizedDocument
from renderproxy.services.navigator import RenderFailure

INTERNAL_ERROR_MESSAGE = "Internal server error occurred while processing the request."
CAPACITY_ERROR_MESSAGE = "Proxy is at capacity. Please retry shortly."
LOAD_FAILED_MESSAGE = {
    ProxyFormat.HTML: "Failed to load website",
    ProxyFormat.SCREENSHOT: "Failed to take screenshot",
}

STATUS_BY_KIND = {
    FailureKind.INVALID_URL: status.HTTP_400_BAD_REQUEST,
    FailureKind.NAVIGATION_TIMEOUT: status.HTTP_502_BAD_GATEWAY,
    FailureKind.NAVIGATION_ERROR: status.HTTP_502_BAD_GATEWAY,
    FailureKind.CAPACITY_EXCEEDED: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureKind.ENGINE_UNAVAILABLE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FailureKind.PAGE_OPEN_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FailureKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

EMBED_HEADERS = {
    "X-Frame-Options": "ALLOWALL",
    "Content-Security-Policy": "frame-ancestors *",
    "Access-Control-Allow-Origin": "*",
}

PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def status_for(kind: FailureKind) -> int:
    return STATUS_BY_KIND.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _json(model, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(model, exclude_none=True))


def content_response(url: str, document: SanitizedDocument) -> JSONResponse:
    return _json(ProxyContentResponse(url=url, content=document.html))


def screenshot_response(url: str, image: bytes) -> JSONResponse:
    encoded = base64.b64encode(image).decode("ascii")
    return _json(ProxyScreenshotResponse(url=url, screenshot=PNG_DATA_URI_PREFIX + encoded))


def validation_error_response(message: str) -> JSONResponse:
    """400 for a missing or malformed URL; nothing was rendered so no url is echoed."""
    return _json(ProxyErrorResponse(error=message), status.HTTP_400_BAD_REQUEST)


def error_response(
    failure: RenderFailure,
    url: Optional[str],
    fmt: ProxyFormat = ProxyFormat.HTML,
) -> JSONResponse:
    status_code = status_for(failure.kind)
    if failure.kind == FailureKind.INVALID_URL:
        return validation_error_response(failure.message)
    if status_code == status.HTTP_502_BAD_GATEWAY:
        error = LOAD_FAILED_MESSAGE[fmt]
    elif status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        error = CAPACITY_ERROR_MESSAGE
    else:
        error = INTERNAL_ERROR_MESSAGE
    body = ProxyErrorResponse(error=error, details=failure.message or "Unknown error", url=url)
    return _json(body, status_code)


def embed_response(document: SanitizedDocument) -> HTMLResponse:
    return HTMLResponse(content=document.html, headers=EMBED_HEADERS)


# Error documents for the direct-embed endpoint
SIMPLE_ERROR_PAGE = """<html><body style="font-family: Arial, sans-serif; padding: 40px; text-align: center;">
  <h2>{title}</h2>
  <p>{message}</p>
</body></html>"""

LOAD_ERROR_PAGE = """<!DOCTYPE html>
<html>
<head>
  <title>Proxy Error</title>
  <style>
    body {{
      font-family: -apple-system, BlinkMacSystemFont, sans-serif;
      padding: 40px;
      text-align: center;
      background: #1a1a1a;
      color: #fff;
      margin: 0;
    }}
    .error-container {{
      max-width: 500px;
      margin: 0 auto;
      padding: 40px;
      border: 1px solid #333;
      border-radius: 8px;
    }}
    h1 {{ color: #ef4444; margin-bottom: 16px; }}
    p {{ color: #888; line-height: 1.6; }}
    .url {{
      background: #333;
      padding: 8px 12px;
      border-radius: 4px;
      font-family: monospace;
      word-break: break-all;
      margin: 16px 0;
    }}
  </style>
</head>
<body>
  <div class="error-container">
    <h1>Unable to Load Website</h1>
    <p>We couldn't load the requested website through our proxy.</p>
    <div class="url">{url}</div>
    <p><strong>Possible reasons:</strong></p>
    <ul style="text-align: left; color: #888;">
      <li>The website is blocking proxy requests</li>
      <li>The website is currently unavailable</li>
      <li>Network connectivity issues</li>
      <li>The website requires special authentication</li>
    </ul>
    <p>Try refreshing the page or entering a different URL.</p>
  </div>
</body>
</html>"""


def _simple_page(title: str, message: str) -> str:
    return SIMPLE_ERROR_PAGE.format(title=html.escape(title), message=html.escape(message))


def embed_validation_error_response(missing: bool) -> HTMLResponse:
    if missing:
        page = _simple_page("Error: URL Required", "Please provide a valid URL parameter.")
    else:
        page = _simple_page("Error: Invalid URL", "Please provide a valid URL format.")
    return HTMLResponse(content=page, status_code=status.HTTP_400_BAD_REQUEST)


def embed_error_response(failure: RenderFailure, url: str) -> HTMLResponse:
    status_code = status_for(failure.kind)
    if failure.kind == FailureKind.INVALID_URL:
        return embed_validation_error_response(missing=False)
    if status_code == status.HTTP_502_BAD_GATEWAY:
        page = LOAD_ERROR_PAGE.format(url=html.escape(url))
    elif status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        page = _simple_page("Proxy Busy", CAPACITY_ERROR_MESSAGE)
    else:
        page = _simple_page("Server Error", INTERNAL_ERROR_MESSAGE)
    return HTMLResponse(content=page, status_code=status_code)
