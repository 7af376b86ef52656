"""FastAPI application entry point.

This module defines the main FastAPI application with CORS middleware,
lifespan management, API routing configuration and the mapping of
storage failures to HTTP responses.

Logging:
    Initializes structured logging on application startup.
    All application events are logged with appropriate context.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from crawlflow import __version__
from crawlflow.api import router as api_router
from crawlflow.api.deps import DBSession  # noqa: TC001 - Required at runtime for FastAPI
from crawlflow.core.config import settings
from crawlflow.core.exceptions import StorageError
from crawlflow.core.logging import get_logger, setup_logging
from crawlflow.db.session import close_db, init_db
from crawlflow.schemas.base import ErrorResponse

# Initialize logging system
setup_logging(
    log_level=settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    service_name=settings.PROJECT_NAME,
    enable_json=settings.LOG_JSON_FORMAT,
)

# Get application logger
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:  # noqa: ARG001 - Required by FastAPI lifespan interface
    """Application lifespan context manager.

    Creates the workflow tables on startup and disposes of the database
    connection pool on shutdown.

    Logging:
        Logs application startup and shutdown events with configuration details.
    """
    # Startup
    logger.info(
        f"Starting {settings.PROJECT_NAME}",
        extra={
            "context": {
                "action": "application_startup",
                "version": __version__,
                "debug": settings.DEBUG,
                "log_level": settings.LOG_LEVEL,
            }
        },
    )

    await init_db()

    logger.info(
        "Application startup completed",
        extra={"context": {"action": "application_startup", "status": "success"}},
    )

    yield

    # Shutdown
    logger.info(
        f"Shutting down {settings.PROJECT_NAME}",
        extra={"context": {"action": "application_shutdown"}},
    )

    await close_db()

    logger.info(
        "Application shutdown completed",
        extra={"context": {"action": "application_shutdown", "status": "success"}},
    )


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Crawl workflow builder: task graphs, validation and storage",
    version=__version__,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Map workflow store failures to 503 Service Unavailable."""
    logger.error(
        "Request failed on workflow store",
        extra={
            "context": {
                "path": request.url.path,
                "operation": exc.operation,
                "workflow_id": str(exc.workflow_id) if exc.workflow_id else None,
            }
        },
    )
    body = ErrorResponse(error=type(exc).__name__, message=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(),
    )


@app.get("/health", tags=["Health"])
async def health_check(db: DBSession) -> dict[str, str]:
    """Health check endpoint.

    Returns the service status and whether the workflow database answers.
    """
    await db.execute(text("SELECT 1"))
    return {"status": "healthy", "database": "ok"}


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns basic API information.
    """
    return {
        "name": settings.PROJECT_NAME,
        "version": __version__,
        "docs": "/docs",
    }
