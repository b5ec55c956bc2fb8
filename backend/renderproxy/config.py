from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application configuration using environment variables."""

    # Application
    APP_NAME: str = "Render Proxy"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Browser engine
    BROWSER_EXECUTABLE_PATH: Optional[str] = None  # None = Playwright's bundled Chromium
    BROWSER_HEADLESS: bool = True
    BROWSER_LAUNCH_ON_STARTUP: bool = False

    # Page limits
    MAX_CONCURRENT_PAGES: int = 8
    PAGE_QUEUE_TIMEOUT_SECONDS: float = 30.0

    # Rendering
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    VIEWPORT_WIDTH: int = 1280
    VIEWPORT_HEIGHT: int = 720
    DEVICE_SCALE_FACTOR: float = 1.0
    NAVIGATION_TIMEOUT_MS: int = 30000
    SETTLE_DELAY_MS: int = 5000  # extra wait for JavaScript-heavy sites
    CONTENT_WAIT_TIMEOUT_MS: int = 2000

    # Reachability probe (HEAD /api/proxy)
    PROBE_TIMEOUT_MS: int = 10000
    PROBE_SETTLE_DELAY_MS: int = 500

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
