import logging
from contextlib import asynccontextmanager

import logfire
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from chartscan.application.api.v1.errors import error_response, map_chartscan_error
from chartscan.application.api.v1.routes import health, scan
from chartscan.application.di import create_container
from chartscan.config import Config, configure_logging
from chartscan.domain.shared.error import ChartScanError
from chartscan.util.di.fastapi import setup_dishka

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = app.state.dishka_container
    yield
    await container.close()


def create_app(config: Config | None = None) -> FastAPI:
    """Create FastAPI application."""
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()

    # Configure logging early
    configure_logging(config.logging)
    logger.info("Starting chartscan server: %s v%s", config.server.name, config.server.version)

    logfire.configure(
        service_name=config.server.name,
        service_version=config.server.version,
        send_to_logfire="if-token-present",
        console=False,
    )

    app_instance = FastAPI(
        title=config.server.name,
        description=config.server.description,
        version=config.server.version,
        lifespan=lifespan,
    )

    # Instrument FastAPI and outbound httpx calls (chart downloads, registry API)
    logfire.instrument_httpx()
    logfire.instrument_fastapi(app_instance)

    # Setup dependency injection
    container = create_container(config)
    setup_dishka(container, app_instance)

    # The scan endpoint is served both unversioned and under /api/v1
    app_instance.include_router(scan.router)
    app_instance.include_router(scan.router, prefix="/api/v1")
    app_instance.include_router(health.router, prefix="/api/v1")

    # Global chartscan error handler - maps domain and infrastructure errors to HTTP responses
    @app_instance.exception_handler(ChartScanError)
    async def chartscan_error_handler(request: Request, exc: ChartScanError):
        if exc.code != "VALIDATION_ERROR":
            logger.error("Scan failed on %s %s: %s", request.method, request.url.path, exc.message)
        return map_chartscan_error(exc)

    # Malformed bodies are client errors, reported in the same shape as other errors
    @app_instance.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "invalid JSON body")

    # Global exception handler - logs all unhandled exceptions
    @app_instance.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return error_response(500, "Internal server error")

    return app_instance
