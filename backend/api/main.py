"""
HotReload API Main Application.

FastAPI application with CORS, error handling, and lifecycle management.
Requires Python 3.11+.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import get_reloader
from utils.config import get_settings
from utils.logger import configure_logging, get_logger


# Initialize logging
configure_logging()
logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Starts an attached engine that is not running yet and stops it on
    shutdown.
    """
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    reloader = get_reloader()
    if reloader is not None and not reloader.is_running:
        await reloader.start()

    yield

    logger.info("shutting_down_application")
    reloader = get_reloader()
    if reloader is not None and reloader.is_running:
        await reloader.stop()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        description="Automatic reload of extensions under development",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handler
    @application.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.is_development else "An unexpected error occurred",
            },
        )

    # Health check endpoint
    @application.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        reloader = get_reloader()
        return {
            "status": "healthy",
            "version": settings.app_version,
            "reloader": "running" if reloader is not None and reloader.is_running else "stopped",
        }

    # Import and include routers here to avoid circular imports
    from api.routes import commands, settings as settings_routes

    application.include_router(commands.router, tags=["Commands"])
    application.include_router(settings_routes.router, prefix="/settings", tags=["Settings"])

    return application


# Create the application instance
app = create_app()
