"""Error taxonomy for the render pipeline."""

from enum import Enum


class FailureKind(str, Enum):
    """Why a proxy request did not produce content."""

    INVALID_URL = "invalid_url"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    PAGE_OPEN_ERROR = "page_open_error"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    NAVIGATION_ERROR = "navigation_error"
    INTERNAL = "internal"


class ProxyError(Exception):
    """Base class for errors raised before or around a render."""

    kind = FailureKind.INTERNAL


class InvalidUrlError(ProxyError):
    """Caller supplied a URL that cannot be normalized into an absolute http(s) URL."""

    kind = FailureKind.INVALID_URL


class MissingUrlError(InvalidUrlError):
    """Caller supplied no URL at all."""


class EngineInitError(ProxyError):
    """Neither the full nor the fallback browser launch succeeded."""

    kind = FailureKind.ENGINE_UNAVAILABLE


class PageOpenError(ProxyError):
    """The engine refused to create a browsing context or page."""

    kind = FailureKind.PAGE_OPEN_ERROR


class CapacityExceededError(ProxyError):
    """No page slot became free within the queue timeout."""

    kind = FailureKind.CAPACITY_EXCEEDED


class TransformError(ProxyError):
    """Rendered content could not be sanitized."""
