"""Main application module.

This module initializes the FastAPI application, includes routes,
and configures middleware, exception handlers and the startup/shutdown
lifecycle of the Redis pool and the sync scheduler.
"""

import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from biolink.api import api_router
from biolink.core.config import settings
from biolink.core.logging import setup_logging
from biolink.core.redis import RedisClientManager
from biolink.scheduler import SchedulerService

# Setup logging
logger = setup_logging()

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed information."""
    logger.warning(f"Request validation error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to catch and log all unhandled exceptions."""
    error_id = f"error-{time.time()}"
    logger.opt(exception=exc).error(
        f"Unhandled exception in {request.method} {request.url.path}",
        error_id=error_id,
        path_params=request.path_params,
        query_params=dict(request.query_params),
        client_host=request.client.host if request.client else None
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error occurred",
            "error_id": error_id,
            "message": str(exc) if settings.DEBUG else "Internal server error"
        }
    )


@app.on_event("startup")
async def startup_event():
    """Run startup tasks."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    redis_manager = RedisClientManager(
        settings.REDIS_URI,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
    )
    app.state.redis_manager = redis_manager
    if not await redis_manager.ping():
        logger.warning("Redis is unreachable; clicks will redirect without being tracked")

    app.state.scheduler = None
    if settings.SYNC_SCHEDULER_ENABLED:
        try:
            scheduler = SchedulerService(redis_manager)
            scheduler.start()
            app.state.scheduler = scheduler
        except Exception as e:
            logger.opt(exception=e).critical("Scheduler could not be started")
    else:
        logger.info("In-process sync scheduler disabled; expecting an external cron")


@app.on_event("shutdown")
async def shutdown_event():
    """Run cleanup tasks."""
    logger.info(f"Shutting down {settings.APP_NAME}")

    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown()

    redis_manager = getattr(app.state, "redis_manager", None)
    if redis_manager is not None:
        await redis_manager.close()
