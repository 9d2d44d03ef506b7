"""
FastAPI Gateway Application Factory
===================================

This is the main entry point for the gateway service that sits between the
community web app running in the browser and the external AI chat APIs.

Architecture:
    Browser → Gateway (this service) → OpenAI / Poe

Routers:
    - /api/openai/* : Forwarded to OPENAI_UPSTREAM_BASE_URL with OPENAI_API_KEY
    - /api/poe/*    : Forwarded to POE_UPSTREAM_BASE_URL with POE_API_KEY
    - /api/posts    : Local posts listing
    - /api/search   : Local posts search
    - /health       : Health check endpoint

Environment Variables:
    - OPENAI_API_KEY: Credential for the OpenAI proxy (500 on its routes if unset)
    - POE_API_KEY: Credential for the Poe proxy (500 on its routes if unset)
    - PROXY_ALLOWED_METHODS: Comma-separated methods (default: POST,GET,PUT,DELETE)
    - PROXY_TIMEOUT_SECONDS: Upstream timeout (default: 20)
    - ALLOWED_ORIGINS: Comma-separated CORS origins
    - POSTS_DATA_PATH: Posts JSON file (default: data/posts.json)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn gateway.app.main:app --reload --host 0.0.0.0 --port 3000

    Production:
        uvicorn gateway.app.main:app --host 0.0.0.0 --port 3000 --workers 4
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from gateway.app.config import Settings, get_settings, validate_configuration
from gateway.app.models import HealthResponse
from gateway.app.posts import posts_router
from gateway.app.proxy import create_proxy_router

SERVICE_NAME = "gateway"
SERVICE_VERSION = "1.0.0"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


class AppState:
    """
    Application state container.

    Holds the settings loaded at startup and the shared upstream HTTP client.
    """
    def __init__(self, settings: Settings):
        self.settings: Settings = settings
        self.http_client: Optional[httpx.AsyncClient] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging
        - Report configuration problems (missing credentials are warnings)
        - Open the shared httpx.AsyncClient used by every proxy mount

    Shutdown tasks:
        - Close the HTTP client
    """
    app_state: AppState = app.state.app_state
    settings = app_state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("gateway.main")

    report = validate_configuration(settings)
    for warning in report["warnings"]:
        logger.warning(warning)
    for error in report["errors"]:
        logger.error(error)

    # Proxies enforce their own per-request deadline
    app_state.http_client = httpx.AsyncClient(timeout=None)

    logger.info(
        "Gateway service started",
        extra={
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "mounts": report["mounts"],
        }
    )

    yield

    logger.info("Shutting down gateway service")
    await app_state.http_client.aclose()
    app_state.http_client = None
    logger.info("Gateway service shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - CORS middleware
        - One proxy router per configured upstream
        - Posts routes, health checks and the exception handler

    Args:
        settings: Explicit settings; loaded from the environment when omitted

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Community AI Gateway",
        description="Credential-holding proxy for AI chat APIs and local posts search",
        version=SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.app_state = AppState(settings)

    origins = settings.allowed_origins_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=False,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        )

    for proxy_config in settings.proxy_configs:
        app.include_router(create_proxy_router(proxy_config), tags=["AI Proxy"])

    app.include_router(posts_router, tags=["Posts"])

    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Returns:
            dict: Service health information
        """
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION
        }

    @app.get("/_health", tags=["System"], response_class=PlainTextResponse)
    async def plain_health_check() -> str:
        return "ok"

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        """
        Root endpoint with service information.

        Returns:
            dict: Service metadata and available endpoints
        """
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "description": "Credential-holding proxy for AI chat APIs and local posts search",
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "posts": "/api/posts",
                "search": "/api/search",
                **{config.name: config.mount_prefix for config in settings.proxy_configs},
            }
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger = logging.getLogger("gateway.main")
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            }
        )

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "gateway.app.main:app",
        host=settings.GATEWAY_HOST,
        port=settings.GATEWAY_PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
