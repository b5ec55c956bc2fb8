"""Render proxy operator utility.

Usage:
    python scripts/proxy_cli.py check                          # Launch the browser and report status
    python scripts/proxy_cli.py render example.com             # Render sanitized HTML to stdout
    python scripts/proxy_cli.py render example.com --format screenshot --output shot.png
"""
import asyncio
import sys
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from renderproxy.config import get_settings
from renderproxy.exceptions import EngineInitError, InvalidUrlError
from renderproxy.schemas import ProxyFormat
from renderproxy.services.browser_manager import BrowserSessionManager
from renderproxy.services.navigator import RenderFailure
from renderproxy.services.proxy_service import ProxyService
from renderproxy.services.url_validator import validate_url


async def check_browser() -> int:
    """Launch the browser engine and report whether it is connected."""
    settings = get_settings()
    manager = BrowserSessionManager(settings)
    print("Launching browser...")
    print(f"Executable: {settings.BROWSER_EXECUTABLE_PATH or '(bundled Chromium)'}")
    try:
        browser = await manager.acquire_engine()
        print(f"✓ Browser {browser.version} connected: {browser.is_connected()}")
        return 0
    except EngineInitError as e:
        print(f"✗ Browser failed to start: {e}")
        return 1
    finally:
        await manager.shutdown()


async def render_url(raw_url: str, fmt: ProxyFormat, output: str = None) -> int:
    """Run the render pipeline once and write the result."""
    try:
        url = validate_url(raw_url)
    except InvalidUrlError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2
    if fmt == ProxyFormat.SCREENSHOT and not output:
        print("✗ Screenshots need --output", file=sys.stderr)
        return 2

    settings = get_settings()
    manager = BrowserSessionManager(settings)
    try:
        if fmt == ProxyFormat.SCREENSHOT:
            result = await ProxyService.render_screenshot(manager, settings, url)
            payload = None if isinstance(result, RenderFailure) else result.image
        else:
            result, document = await ProxyService.render_html(manager, settings, url)
            payload = None if document is None else document.html.encode("utf-8")
    finally:
        await manager.shutdown()

    if isinstance(result, RenderFailure):
        print(f"✗ Failed to render {url} ({result.kind.value}): {result.message}", file=sys.stderr)
        return 1

    if output:
        Path(output).write_bytes(payload)
        print(f"✓ Wrote {len(payload)} bytes from {result.final_url} to {output}")
    else:
        sys.stdout.write(payload.decode("utf-8"))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Render proxy utility")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", help="Launch the browser and report status")

    render_parser = subparsers.add_parser("render", help="Render a URL once")
    render_parser.add_argument("url", help="URL to render")
    render_parser.add_argument(
        "--format",
        choices=[f.value for f in ProxyFormat],
        default=ProxyFormat.HTML.value,
    )
    render_parser.add_argument("--output", "-o", help="File to write the result to")

    args = parser.parse_args()

    if args.command == "check":
        code = asyncio.run(check_browser())
    else:
        code = asyncio.run(render_url(args.url, ProxyFormat(args.format), args.output))
    sys.exit(code)


if __name__ == "__main__":
    main()
