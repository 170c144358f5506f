"""
FastAPI application.
Wires the services, monitoring and the domain error responses.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from leavetime.api.v1.router import api_router
from leavetime.core.config import get_settings
from leavetime.core.logging import setup_logging
from leavetime.core.metrics import PrometheusMiddleware
from leavetime.exceptions import (
    AccessException,
    AirportNotFoundException,
    CacheException,
    FlightSourceException,
    InvalidFlightException,
    LeaveTimeServiceException,
    LocationUnavailableException,
    NoDataSourceAvailableException,
    NoEventsFoundException,
    SourceNotAvailableException,
    TransportCalculationException,
    UnknownSourceException,
)
from leavetime.services.container import ServiceContainer, build_container

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# First match wins, so subclasses go before their bases
ERROR_STATUS_CODES = (
    (LocationUnavailableException, 400),
    (AccessException, 403),
    (InvalidFlightException, 400),
    (NoEventsFoundException, 404),
    (AirportNotFoundException, 404),
    (UnknownSourceException, 404),
    (NoDataSourceAvailableException, 503),
    (SourceNotAvailableException, 503),
    (CacheException, 503),
    (TransportCalculationException, 502),
    (FlightSourceException, 502),
)


def status_code_for(exc: LeaveTimeServiceException) -> int:
    for exc_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def service_exception_handler(request: Request, exc: LeaveTimeServiceException):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__}
    )


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application. A prepared container replaces the one built from
    settings at startup.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Handles startup and shutdown events.
        """
        logger.info("Starting LeaveTime Backend...")

        services = container or build_container(settings)
        app.state.container = services
        await services.start()

        logger.info("Application startup complete")

        yield

        # Shutdown
        logger.info("Shutting down application...")
        await services.stop()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="LeaveTime Backend API",
        description="Detects flights in calendars and tells you when to leave for the airport",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json"
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics middleware
    if settings.ENABLE_METRICS:
        app.add_middleware(PrometheusMiddleware)

    app.add_exception_handler(LeaveTimeServiceException, service_exception_handler)

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Prometheus metrics endpoint
    if settings.ENABLE_METRICS:
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": "LeaveTime Backend API",
            "version": "1.0.0",
            "status": "running",
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        services: Optional[ServiceContainer] = getattr(request.app.state, "container", None)
        if services is None:
            return {"status": "starting"}

        scheduler = services.scheduler
        return {
            "status": "healthy",
            "snapshot_store": await services.store.health_check(),
            "has_available_source": services.coordinator.has_available_source,
            "scheduler": scheduler.is_running if scheduler else False,
            "next_sync": scheduler.get_next_run_time() if scheduler else None
        }

    return app


app = create_app()
