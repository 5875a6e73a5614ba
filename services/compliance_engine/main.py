"""
Compliance Engine Service - Main Application
============================================

FastAPI application for compliance rule discovery and analysis.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.compliance_engine import __version__
from services.compliance_engine.container import EngineContainer
from services.compliance_engine.routes import analysis, rules
from shared.config import settings
from shared.database import MongoDBClient
from shared.logging import get_logger, setup_logging
from shared.models.common import HealthResponse


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="compliance-engine",
)

logger = get_logger(__name__)

SERVICE_NAME = "compliance-engine"


def create_app(container: EngineContainer | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        container: Pre-built engine (tests). When omitted the engine is
            built from settings at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        """Application lifespan manager."""
        logger.info(
            "compliance_engine_starting",
            environment=settings.environment.value,
            port=settings.port,
        )

        owned = container is None
        try:
            app.state.container = container or await EngineContainer.create()
        except Exception as e:
            logger.error("startup_failed", error=str(e), error_type=type(e).__name__)
            raise

        yield

        logger.info("compliance_engine_shutting_down")
        if owned:
            await app.state.container.close()

    app = FastAPI(
        title="Clawse Compliance Engine",
        description="Compliance rule aggregation, applicability matching and reporting",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    if container is not None:
        app.state.container = container

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # Health Check Endpoints
    # ========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request) -> HealthResponse:
        """Service health check."""
        engine: EngineContainer = request.app.state.container
        components: dict[str, dict[str, Any]] = {}

        if engine.repository.is_active:
            components["mongodb"] = await MongoDBClient.health_check()
        else:
            components["mongodb"] = {"status": "disabled", "mode": "real_time_only"}

        components["sources"] = {
            "status": "healthy" if engine.sources else "unhealthy",
            "enabled": [source.name for source in engine.sources],
        }

        return HealthResponse.from_components(SERVICE_NAME, __version__, components)

    @app.get("/", tags=["Health"])
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": "Clawse Compliance Engine",
            "version": __version__,
            "docs": "/docs",
        }

    # ========================================================================
    # Include Routers
    # ========================================================================

    app.include_router(
        analysis.router,
        prefix="/api/v1/compliance",
        tags=["Compliance"],
    )

    app.include_router(
        rules.router,
        prefix="/api/v1/rules",
        tags=["Rules"],
    )

    # ========================================================================
    # Error Handlers
    # ========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed request bodies."""
        logger.info("request_validation_failed", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "Invalid request body",
                "status_code": 422,
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle HTTP exceptions."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": exc.detail,
                "status_code": exc.status_code,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal server error",
                "status_code": 500,
            },
        )

    return app


app = create_app()


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.compliance_engine.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
