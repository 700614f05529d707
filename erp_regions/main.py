"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from erp_regions.config import get_settings
from erp_regions.database import close_db, engine
from erp_regions.logging_config import LoggingMiddleware, get_logger, setup_logging
from erp_regions.services.regions import RegionNotFoundError

settings = get_settings()

# Initialize structured logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    logger.info("application_starting", version="0.1.0", env=settings.app_env)

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("database_connected", url=settings.database_url.split("@")[-1])
    except Exception as e:
        logger.warning("database_connection_failed", error=str(e))

    logger.info("application_started")
    yield

    logger.info("application_shutting_down")
    await close_db()
    logger.info("database_disconnected")


async def region_not_found_handler(request: Request, exc: RegionNotFoundError) -> JSONResponse:
    """Answer unknown region codes with a 404 message object."""
    logger.info("region_not_found", region_id=exc.region_id)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": "Region not found"},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    # Import routers inside function to avoid circular imports
    from erp_regions.routers.regions import router as regions_router

    app = FastAPI(
        title="ERP Regions",
        description="Province / city / district / village lookup and autocomplete",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Logging middleware (must be added first so it wraps all requests)
    app.add_middleware(LoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RegionNotFoundError, region_not_found_handler)

    app.include_router(regions_router, prefix=settings.api_prefix)

    @app.get("/health", tags=["Health"])
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        checks = {
            "status": "healthy",
            "app": settings.app_name,
            "env": settings.app_env,
        }

        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "connected"
        except Exception:
            checks["database"] = "disconnected"

        return JSONResponse(content=checks)

    @app.get("/", include_in_schema=False)
    async def root():
        """Redirect root to API documentation."""
        from fastapi.responses import RedirectResponse

        return RedirectResponse(url="/docs")

    return app


# Create app instance
app = create_app()
