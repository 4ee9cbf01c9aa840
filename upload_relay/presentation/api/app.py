"""
FastAPI application factory and configuration.

This module creates the relay's HTTP surface: middleware, error handlers and
route registration.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from ...application.container import IContainer
from ...application.startup import ApplicationStartup
from ...core.exceptions import IngestionError, RelayError
from ...infrastructure.config.models import RelayConfig
from .middleware import ErrorHandlerMiddleware, RequestTimingMiddleware
from .routers import health, upload


def create_app(container: IContainer, config: RelayConfig,
               startup: Optional[ApplicationStartup] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Dependency injection container holding the relay services
        config: Relay configuration
        startup: When given, components are started before the app serves
            requests and stopped on shutdown

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if startup is not None:
            await startup.start_application()
        logger.info(f"{config.name} accepting uploads")
        try:
            yield
        finally:
            if startup is not None:
                await startup.stop_application()
            logger.info(f"{config.name} shut down")

    app = FastAPI(
        title=config.name,
        version=config.version,
        description="Session-buffering upload relay for downstream webhooks",
        debug=config.debug,
        lifespan=lifespan
    )

    app.state.container = container
    app.state.config = config

    _configure_middleware(app)
    _register_error_handlers(app)
    _register_routes(app)

    logger.debug(f"FastAPI application created: {config.name} v{config.version}")
    return app


def _configure_middleware(app: FastAPI) -> None:
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestTimingMiddleware)


async def _relay_error_handler(request: Request, exc: Any) -> JSONResponse:
    error: RelayError = exc
    log = logger.bind(session_id=error.session_id) if error.session_id else logger
    if isinstance(error, IngestionError):
        log.warning(f"Rejected upload: {error.message}")
    else:
        log.error(f"Upload error: {error.message}")

    content = {"success": False, "error": error.message}
    if error.session_id:
        content["sessionId"] = error.session_id
    return JSONResponse(status_code=error.status_code, content=content)


def _register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RelayError, _relay_error_handler)


def _register_routes(app: FastAPI) -> None:
    app.include_router(upload.router, tags=["upload"])
    app.include_router(health.router, prefix="/health", tags=["health"])

    @app.get("/", tags=["root"])
    async def root() -> dict:
        """Basic application information."""
        return {
            "name": app.title,
            "version": app.version,
            "status": "running",
            "upload_url": "/upload",
            "health_url": "/health",
        }
