"""Normalization and validation of caller-supplied target URLs."""

from typing import Optional
from urllib.parse import urlsplit

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from renderproxy.exceptions import InvalidUrlError, MissingUrlError

MISSING_URL_MESSAGE = "URL parameter is required"
INVALID_URL_MESSAGE = "Invalid URL format. Please provide a valid URL."

_SCHEMES = ("http://", "https://")
_url_adapter = TypeAdapter(AnyHttpUrl)
_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(raw: str) -> str:
    """Prefix ``https://`` unless the input already carries an http(s) scheme."""
    if raw.lower().startswith(_SCHEMES):
        return raw
    return "https://" + raw


def validate_url(raw: Optional[str]) -> str:
    """
    Trim, normalize and validate a raw URL.

    Returns the normalized URL string (not the parser's canonical form, so
    ``example.com`` becomes ``https://example.com`` without a trailing slash).
    Raises MissingUrlError for empty input and InvalidUrlError when the
    normalized string is not an absolute http(s) URL with a host.
    """
    if raw is None or not raw.strip():
        raise MissingUrlError(MISSING_URL_MESSAGE)

    normalized = normalize_url(raw.strip())
    try:
        parsed = _url_adapter.validate_python(normalized)
    except ValidationError:
        raise InvalidUrlError(INVALID_URL_MESSAGE)

    if not parsed.host:
        raise InvalidUrlError(INVALID_URL_MESSAGE)

    return normalized


def url_origin(url: str) -> str:
    """Return ``scheme://host[:port]`` for an already validated URL."""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal
    scheme = parts.scheme.lower()
    origin = f"{scheme}://{host}"
    if parts.port and parts.port != _DEFAULT_PORTS.get(scheme):
        origin += f":{parts.port}"
    return origin
