"""FastAPI application entry point.

Wiring only: lifespan, exception handlers, middleware, routers and
tracing. See backoffice.core.lifespan and backoffice.core.exception_handlers.

Settings are loaded inside create_app() so that tests can set env (and
clear the get_settings cache) before calling create_app().
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.api.v1 import api_router
from backoffice.core.config import Settings, get_settings
from backoffice.core.exception_handlers import register_exception_handlers
from backoffice.core.lifespan import create_lifespan
from backoffice.middleware import (
    ApiUsageMiddleware,
    OrgContextMiddleware,
    RequestIDMiddleware,
)
from backoffice.shared.telemetry.telemetry import (
    TelemetryConfig,
    get_telemetry,
    set_telemetry,
)

logger = logging.getLogger(__name__)


def _setup_telemetry(app: FastAPI, settings: Settings) -> None:
    """Install the tracer provider once per process and instrument this app."""
    telemetry = get_telemetry()
    if telemetry is None:
        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            environment=settings.telemetry_environment,
        )
        if telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        ) is None:
            return
        telemetry.instrument_logging()
        set_telemetry(telemetry)
    telemetry.instrument_fastapi(app)
    logger.info("Telemetry initialized")


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )

    register_exception_handlers(app)

    # Last added = outermost: request ID -> org context -> usage metering -> CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.api_usage_tracking_enabled:
        app.add_middleware(ApiUsageMiddleware)
    app.add_middleware(OrgContextMiddleware)
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)

    app.include_router(api_router, prefix="/api/v1")

    if settings.telemetry_enabled:
        _setup_telemetry(app, settings)
    return app


app = create_app()
