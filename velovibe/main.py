"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn velovibe.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.dependencies import close_coach
from .api.routes import exercises, health, insights, workouts
from .config.settings import get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs the configuration on startup and reports problems. Persisted data
    is loaded lazily by the store dependency, not here.
    """
    settings = get_settings()

    logger.info(
        "VeloVibe API starting",
        extra={
            "version": __version__,
            "coaching_enabled": settings.coaching_enabled,
            "storage_mock_mode": settings.storage_mock_mode,
        }
    )

    problems = settings.validate_required_fields()
    if problems:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": problems}
        )

    if not settings.coaching_enabled:
        logger.info("ANTHROPIC_API_KEY not set; AI coaching is disabled")

    yield

    await close_coach()
    logger.info("VeloVibe API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Personal workout log with calorie trends and AI coaching.

        ## Workflow

        1. **Pick an exercise**: `GET /api/v1/exercises`, `POST /api/v1/exercises/{id}/select`
        2. **Log sessions**: `POST /api/v1/workouts`
        3. **See progress**: `GET /api/v1/insights/stats`, `GET /api/v1/insights/trend`
        4. **Get coached**: `POST /api/v1/insights/coach`
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        exercises.router,
        prefix="/api/v1/exercises",
        tags=["Exercises"],
    )

    app.include_router(
        workouts.router,
        prefix="/api/v1/workouts",
        tags=["Workouts"],
    )

    app.include_router(
        insights.router,
        prefix="/api/v1/insights",
        tags=["Insights"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "VeloVibe API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Storage write failures end up here. We log the full error
        server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "velovibe.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
