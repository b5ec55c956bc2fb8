"""Tests for the proxy and health endpoints."""

import base64

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


def navigated_urls(fake_playwright):
    return [
        call[0]
        for browser in fake_playwright.chromium.browsers
        for context in browser.contexts
        for page in context.pages
        for call in page.goto_calls
    ]


class TestProxyHtml:
    """GET /api/proxy with format=html."""

    def test_render_without_scheme(self, client, fake_playwright, manager):
        response = client.get("/api/proxy", params={"url": "example.com"})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["url"] == "https://example.com"
        assert "timestamp" in data
        assert navigated_urls(fake_playwright) == ["https://example.com"]
        assert manager.open_page_count == 0

    def test_content_is_sanitized(self, client):
        response = client.get("/api/proxy", params={"url": "example.com", "format": "html"})
        content = response.json()["content"]
        assert '<base href="https://example.com/"' in content
        assert "if (false)" in content
        assert "top !== self" not in content
        assert "Content-Security-Policy" not in content
        assert 'name="viewport"' in content

    def test_missing_url(self, client, fake_playwright):
        response = client.get("/api/proxy")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "URL parameter is required"}
        assert fake_playwright.starts == 0

    def test_empty_url(self, client, fake_playwright):
        response = client.get("/api/proxy", params={"url": ""})
        assert response.status_code == 400
        assert response.json()["error"] == "URL parameter is required"
        assert fake_playwright.chromium.launches == []

    def test_invalid_url(self, client, fake_playwright):
        response = client.get("/api/proxy", params={"url": "not a url"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid URL format. Please provide a valid URL."
        assert fake_playwright.chromium.launches == []

    def test_navigation_failure(self, client, site, manager):
        site.goto_error = PlaywrightError("net::ERR_NAME_NOT_RESOLVED at http://nonexistent.invalid/")
        response = client.get("/api/proxy", params={"url": "http://nonexistent.invalid"})
        assert response.status_code == 502
        assert response.json() == {
            "success": False,
            "error": "Failed to load website",
            "details": "net::ERR_NAME_NOT_RESOLVED at http://nonexistent.invalid/",
            "url": "http://nonexistent.invalid",
        }
        assert manager.open_page_count == 0

    def test_navigation_timeout(self, client, site):
        site.goto_error = PlaywrightTimeoutError("Timeout 30000ms exceeded.")
        response = client.get("/api/proxy", params={"url": "slow.example.com"})
        assert response.status_code == 502
        assert response.json()["details"] == "Timeout 30000ms exceeded."

    def test_content_capture_failure(self, client, site):
        site.capture_error = PlaywrightError("Execution context was destroyed")
        response = client.get("/api/proxy", params={"url": "example.com"})
        assert response.status_code == 502
        assert response.json()["error"] == "Failed to load website"

    def test_engine_failure(self, client, fake_playwright):
        fake_playwright.chromium.failures = 2
        response = client.get("/api/proxy", params={"url": "example.com"})
        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Internal server error occurred while processing the request."
        assert data["url"] == "https://example.com"
        assert "Traceback" not in data["details"]

    def test_unknown_format(self, client):
        response = client.get("/api/proxy", params={"url": "example.com", "format": "pdf"})
        assert response.status_code == 422
        assert response.json()["query"]["format"] == "pdf"


class TestProxyScreenshot:
    """GET /api/proxy with format=screenshot."""

    def test_screenshot(self, client, site):
        response = client.get("/api/proxy", params={"url": "example.com", "format": "screenshot"})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["url"] == "https://example.com"
        prefix = "data:image/png;base64,"
        assert data["screenshot"].startswith(prefix)
        payload = data["screenshot"][len(prefix):]
        assert payload
        assert base64.b64decode(payload) == site.image

    def test_screenshot_failure(self, client, site):
        site.goto_error = PlaywrightError("net::ERR_CONNECTION_REFUSED")
        response = client.get("/api/proxy", params={"url": "example.com", "format": "screenshot"})
        assert response.status_code == 502
        assert response.json()["error"] == "Failed to take screenshot"

    def test_screenshot_capture_failure(self, client, site, manager):
        site.capture_error = PlaywrightError("Target page, context or browser has been closed")
        response = client.get("/api/proxy", params={"url": "example.com", "format": "screenshot"})
        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "Failed to take screenshot"
        assert data["details"] == "Target page, context or browser has been closed"
        assert manager.open_page_count == 0

    def test_screenshot_missing_url(self, client):
        response = client.get("/api/proxy", params={"format": "screenshot"})
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestProxyIframe:
    """GET /api/proxy/iframe."""

    def test_embed_headers(self, client):
        response = client.get("/api/proxy/iframe", params={"url": "example.com"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "text/html; charset=utf-8"
        assert response.headers["x-frame-options"] == "ALLOWALL"
        assert response.headers["content-security-policy"] == "frame-ancestors *"
        assert response.headers["access-control-allow-origin"] == "*"

    def test_embed_body_is_sanitized_html(self, client):
        response = client.get("/api/proxy/iframe", params={"url": "example.com"})
        assert response.text.startswith('<html><head><base href="https://example.com/"')
        assert 'data-render-proxy="frame-guard"' in response.text

    def test_embed_missing_url(self, client):
        response = client.get("/api/proxy/iframe")
        assert response.status_code == 400
        assert "URL Required" in response.text

    def test_embed_invalid_url(self, client):
        response = client.get("/api/proxy/iframe", params={"url": "not a url"})
        assert response.status_code == 400
        assert "Invalid URL" in response.text

    def test_embed_load_failure(self, client, site, manager):
        site.goto_error = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        response = client.get("/api/proxy/iframe", params={"url": "nonexistent.invalid"})
        assert response.status_code == 502
        assert "Unable to Load Website" in response.text
        assert "https://nonexistent.invalid" in response.text
        assert manager.open_page_count == 0

    def test_embed_error_page_escapes_url(self, client, site):
        site.goto_error = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        response = client.get("/api/proxy/iframe", params={"url": "example.com/<script>x</script>"})
        assert response.status_code == 502
        assert "<script>x</script>" not in response.text
        assert "&lt;script&gt;" in response.text

    def test_embed_engine_failure(self, client, fake_playwright):
        fake_playwright.chromium.failures = 2
        response = client.get("/api/proxy/iframe", params={"url": "example.com"})
        assert response.status_code == 500
        assert "Server Error" in response.text


class TestProxyProbe:
    """HEAD /api/proxy."""

    def test_reachable(self, client, fake_playwright):
        response = client.head("/api/proxy", params={"url": "example.com"})
        assert response.status_code == 200
        assert response.content == b""
        page = fake_playwright.chromium.browsers[0].contexts[0].pages[0]
        assert page.goto_calls[0][1] == "domcontentloaded"

    def test_invalid(self, client, fake_playwright):
        response = client.head("/api/proxy", params={"url": "not a url"})
        assert response.status_code == 400
        assert fake_playwright.chromium.launches == []

    def test_missing(self, client):
        assert client.head("/api/proxy").status_code == 400

    def test_unreachable(self, client, site, manager):
        site.goto_error = PlaywrightError("net::ERR_CONNECTION_REFUSED")
        response = client.head("/api/proxy", params={"url": "example.com"})
        assert response.status_code == 502
        assert manager.open_page_count == 0


class TestHealth:
    """GET /api/health."""

    def test_healthy(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["browser"] == "connected"
        assert "timestamp" in data
        assert "error" not in data

    def test_browser_failed(self, client, fake_playwright):
        fake_playwright.chromium.failures = 2
        response = client.get("/api/health")
        assert response.status_code == 500
        data = response.json()
        assert data["status"] == "error"
        assert data["browser"] == "failed"
        assert data["error"]

    def test_relaunch_after_disconnect(self, client, fake_playwright):
        client.get("/api/health")
        fake_playwright.chromium.browsers[0].disconnect()
        response = client.get("/api/health")
        assert response.json()["browser"] == "connected"
        assert len(fake_playwright.chromium.launches) == 2


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"
