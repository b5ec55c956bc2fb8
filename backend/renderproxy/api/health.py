from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
import logging

from renderproxy.exceptions import EngineInitError
from renderproxy.schemas import HealthResponse
from renderproxy.services.browser_manager import BrowserSessionManager, get_browser_manager

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health_check(manager: BrowserSessionManager = Depends(get_browser_manager)):
    """Report whether the shared browser engine is up, launching it if needed."""
    try:
        browser = await manager.acquire_engine()
    except EngineInitError as e:
        logger.error(f"Health check failed: {e}")
        body = HealthResponse(status="error", browser="failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=jsonable_encoder(body, exclude_none=True),
        )

    return HealthResponse(
        status="ok",
        browser="connected" if browser.is_connected() else "disconnected",
    )
