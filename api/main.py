"""
FastAPI application initialization
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from api.routes import trigger
from core.config import load_settings
from core.exceptions import ConfigError
from core.logging import setup_logging
from ingestion.scheduler import IngestScheduler
from schemas.api import ErrorResponse

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Stoopr Ingest",
    description="Scheduled ingestion of building, listing and city open-data feeds",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(trigger.router)

scheduler = None

CONFIG_ERROR_MESSAGE = "Service is not configured"


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError):
    # Raised before the token is checked; details stay in the log
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=CONFIG_ERROR_MESSAGE).model_dump()
    )


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    global scheduler

    try:
        settings = load_settings()
    except ConfigError as e:
        # The trigger reports the same error per request
        logger.warning(f"Starting without a valid configuration: {e}")
        return

    setup_logging(settings)
    logger.info("Starting Stoopr Ingest")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Store backend: {settings.STORE_BACKEND}")

    if settings.SCHEDULER_ENABLED:
        scheduler = IngestScheduler(settings)
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    global scheduler

    logger.info("Shutting down Stoopr Ingest")
    if scheduler is not None:
        scheduler.stop()
        scheduler = None


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Stoopr Ingest",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "ingest": "/ingest?token=<secret>"
        }
    }
