from pydantic import BaseModel, Field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProxyFormat(str, Enum):
    HTML = "html"
    SCREENSHOT = "screenshot"


class TargetRequest(BaseModel):
    """A validated proxy target."""

    url: str  # normalized absolute URL
    format: ProxyFormat = ProxyFormat.HTML

    class Config:
        frozen = True


# Response envelopes
class ProxyContentResponse(BaseModel):
    success: bool = True
    url: str
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class ProxyScreenshotResponse(BaseModel):
    success: bool = True
    url: str
    screenshot: str  # data:image/png;base64,...
    timestamp: datetime = Field(default_factory=utc_now)


class ProxyErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = None
    url: Optional[str] = None


class HealthResponse(BaseModel):
    status: str  # "ok", "error"
    browser: str  # "connected", "disconnected", "failed"
    timestamp: datetime = Field(default_factory=utc_now)
    error: Optional[str] = None
