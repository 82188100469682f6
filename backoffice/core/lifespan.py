"""Application lifespan: startup and shutdown wiring.

Startup: logging, Redis cache (if enabled), analytics sink (if enabled),
the session-per-write audit store and usage tracker (if SQL is
configured), and SQLAlchemy/Redis tracing when telemetry is on.
Shutdown: drain in-flight background writes, close the analytics client,
disconnect the cache, flush telemetry, dispose the SQL engine.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from backoffice.core.config import get_settings
from backoffice.shared.background import get_background_runner
from backoffice.shared.telemetry import setup_logging
from backoffice.shared.telemetry.telemetry import get_telemetry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    The usage tracker is built whenever SQL is configured; the
    api_usage_tracking_enabled setting only decides whether the HTTP
    metering middleware is installed (see create_app).
    """
    settings = get_settings()
    setup_logging()
    telemetry = get_telemetry()

    # ---- Startup ----
    app.state.cache = None
    if settings.redis_enabled:
        from backoffice.infrastructure.cache import CacheService

        if telemetry is not None:
            telemetry.instrument_redis()
        cache = CacheService(settings=settings)
        await cache.connect()
        app.state.cache = cache

    app.state.analytics = None
    if settings.analytics_enabled and settings.analytics_api_key is not None:
        from backoffice.infrastructure.analytics import HttpAnalyticsSink

        app.state.analytics = HttpAnalyticsSink(
            settings.analytics_host,
            settings.analytics_api_key.get_secret_value(),
            timeout=settings.analytics_timeout_seconds,
        )
        logger.info("Analytics sink enabled: %s", settings.analytics_host)

    app.state.audit_store = None
    app.state.usage_tracker = None
    if settings.database_url:
        from backoffice.application.services.usage_tracker import UsageTracker
        from backoffice.infrastructure.persistence import database
        from backoffice.infrastructure.services import (
            AuditLogService,
            PlanCatalogService,
            UsageEventService,
        )

        session_factory = database.get_session_factory()
        if telemetry is not None:
            telemetry.instrument_sqlalchemy(database.engine)
        app.state.audit_store = AuditLogService(session_factory)
        app.state.usage_tracker = UsageTracker(
            UsageEventService(session_factory), PlanCatalogService(session_factory)
        )
        if not settings.api_usage_tracking_enabled:
            logger.info("API call metering disabled; usage tracking stays available")
    else:
        logger.warning("DATABASE_URL not set; audit and usage stores are disabled")

    yield

    # ---- Shutdown ----
    runner = get_background_runner()
    if runner.pending:
        logger.info("Draining %d background task(s)", runner.pending)
    await runner.drain(timeout=settings.audit_drain_timeout_seconds)

    if app.state.analytics is not None:
        await app.state.analytics.aclose()
        app.state.analytics = None

    if app.state.cache is not None:
        await app.state.cache.disconnect()
        app.state.cache = None

    if telemetry is not None:
        telemetry.shutdown()

    from backoffice.infrastructure.persistence.database import dispose_engine

    await dispose_engine()
