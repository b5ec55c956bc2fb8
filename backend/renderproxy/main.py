import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from renderproxy import __version__
from renderproxy.config import get_settings
from renderproxy.api import health, proxy
from renderproxy.services.browser_manager import browser_manager

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warm up the browser if configured; always close it on shutdown."""
    logger.info(f"Starting {settings.APP_NAME} {__version__}")
    if settings.BROWSER_LAUNCH_ON_STARTUP:
        try:
            await browser_manager.acquire_engine()
        except Exception as e:
            # Next request retries the launch
            logger.error(f"Browser warm-up failed: {e}")
    yield
    logger.info("Shutting down gracefully...")
    await browser_manager.shutdown()


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Renders third-party websites in a headless browser for frame embedding",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Add custom exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log and handle validation errors with detailed information."""
    errors = exc.errors()
    logger.error(f"Validation error on {request.method} {request.url.path}")
    logger.error(f"Query parameters: {dict(request.query_params)}")
    logger.error(f"Validation errors: {errors}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": jsonable_encoder(errors),
            "query": dict(request.query_params),
        }
    )


# Include routers
app.include_router(proxy.router, prefix="/api")
app.include_router(health.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": __version__,
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "renderproxy.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
