from renderproxy.schemas.proxy import (
    HealthResponse,
    ProxyContentResponse,
    ProxyErrorResponse,
    ProxyFormat,
    ProxyScreenshotResponse,
    TargetRequest,
)

__all__ = [
    "HealthResponse",
    "ProxyContentResponse",
    "ProxyErrorResponse",
    "ProxyFormat",
    "ProxyScreenshotResponse",
    "TargetRequest",
]
