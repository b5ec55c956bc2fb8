"""
Text rewriting that makes a rendered page embeddable in a cross-origin frame.

This is regex matching over HTML and inline script, not a parser. It defeats
the common frame-busting idioms and is not a security boundary. Every element
it injects is tagged with ``data-render-proxy`` so running it twice over the
same document changes nothing.
"""

import html
import logging
import re
from dataclasses import dataclass

from renderproxy.exceptions import TransformError

logger = logging.getLogger(__name__)

MARKER = "data-render-proxy"

_HEAD_OPEN_RE = re.compile(r"<head(?:\s[^>]*)?>", re.IGNORECASE)
_HTML_OPEN_RE = re.compile(r"<html(?:\s[^>]*)?>", re.IGNORECASE)

_INJECTED_BASE_RE = re.compile(rf"<base\b[^>]*\b{MARKER}\b[^>]*>", re.IGNORECASE)
_INJECTED_SCRIPT_RE = re.compile(
    rf"<script\b[^>]*\b{MARKER}\b[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL
)

# window, self, top, parent and window.top/self/parent, compared in either order
_FRAME_OPERAND = r"(?:window\.(?:top|self|parent)|window|self|top|parent)"
_FRAME_COMPARISON_RE = re.compile(
    rf"(?<![\w$.]){_FRAME_OPERAND}\s*(?P<op>[!=]==?)\s*{_FRAME_OPERAND}(?![\w$.])",
    re.IGNORECASE,
)

_REDIRECT_RE = re.compile(
    r"(?<![\w$.])(?:window|document|top|parent)\.location(?:\.href)?\s*=(?!=)\s*"
    r"(?:\"[^\"\n]*\"|'[^'\n]*'|[^;\n<>}\"']*)",
    re.IGNORECASE,
)
REDIRECT_PLACEHOLDER = "/* redirect removed */"

_CSP_META_RE = re.compile(
    r"<meta\b[^>]*\b(?:http-equiv|name)\s*=\s*[\"']?\s*"
    r"content-security-policy(?:-report-only)?\s*[\"']?[^>]*>",
    re.IGNORECASE,
)
_VIEWPORT_META_RE = re.compile(r"<meta\b[^>]*\bname\s*=\s*[\"']?viewport\b", re.IGNORECASE)

VIEWPORT_META = f'<meta name="viewport" content="width=device-width, initial-scale=1" {MARKER}>'

FRAME_GUARD_SCRIPT = f"""<script {MARKER}="frame-guard">
(function () {{
  function pin(name, value) {{
    try {{
      Object.defineProperty(window, name, {{ get: function () {{ return value; }} }});
    }} catch (e) {{}}
  }}
  pin('top', window);
  pin('parent', window);
  pin('frameElement', null);
  try {{
    var currentLocation = window.location;
    Object.defineProperty(window, 'location', {{
      get: function () {{ return currentLocation; }},
      set: function (value) {{ console.log('Blocked redirect to:', value); }}
    }});
  }} catch (e) {{}}
}})();
</script>"""


@dataclass(frozen=True)
class SanitizedDocument:
    html: str
    origin: str
    sanitized: bool = True


def _insert_into_head(document: str, fragment: str) -> str:
    """Insert ``fragment`` as the first child of <head>, creating one if needed."""
    match = _HEAD_OPEN_RE.search(document)
    if match:
        return document[:match.end()] + fragment + document[match.end():]
    match = _HTML_OPEN_RE.search(document)
    if match:
        return document[:match.end()] + "<head>" + fragment + "</head>" + document[match.end():]
    return "<head>" + fragment + "</head>" + document


def _insert_after(document: str, anchor: re.Pattern, fragment: str) -> str:
    match = anchor.search(document)
    if match:
        return document[:match.end()] + fragment + document[match.end():]
    return _insert_into_head(document, fragment)


def add_base_tag(document: str, origin: str) -> str:
    if _INJECTED_BASE_RE.search(document):
        return document
    href = html.escape(origin.rstrip("/") + "/", quote=True)
    return _insert_into_head(document, f'<base href="{href}" {MARKER}>')


def neutralize_frame_checks(document: str) -> str:
    def replace(match):
        return "false" if match.group("op").startswith("!") else "true"

    return _FRAME_COMPARISON_RE.sub(replace, document)


def neutralize_redirects(document: str) -> str:
    return _REDIRECT_RE.sub(REDIRECT_PLACEHOLDER, document)


def inject_frame_guard(document: str) -> str:
    if _INJECTED_SCRIPT_RE.search(document):
        return document
    return _insert_after(document, _INJECTED_BASE_RE, FRAME_GUARD_SCRIPT)


def strip_csp_meta(document: str) -> str:
    return _CSP_META_RE.sub("", document)


def ensure_viewport_meta(document: str) -> str:
    if _VIEWPORT_META_RE.search(document):
        return document
    return _insert_after(document, _INJECTED_SCRIPT_RE, VIEWPORT_META)


def sanitize(raw_html: str, origin: str) -> SanitizedDocument:
    """
    Rewrite rendered HTML for embedding under a different origin.

    ``origin`` is the rendered page's ``scheme://host[:port]``; relative
    links resolve against it. Steps run in a fixed order: the frame guard
    script is injected after the comparison and redirect rewrites so they
    never touch it.
    """
    if not isinstance(raw_html, str):
        raise TransformError(f"Expected rendered HTML text, got {type(raw_html).__name__}")

    document = add_base_tag(raw_html, origin)
    document = neutralize_frame_checks(document)
    document = neutralize_redirects(document)
    document = inject_frame_guard(document)
    document = strip_csp_meta(document)
    document = ensure_viewport_meta(document)
    return SanitizedDocument(html=document, origin=origin)
