"""Health check endpoints. No auth; used by liveness and readiness checks."""

from fastapi import APIRouter, Request

from backoffice.core.config import get_settings
from backoffice.schemas.health import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse(version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
def readiness_check(request: Request) -> ReadinessResponse:
    """Report which optional backends are wired.

    Always 200: a missing cache or analytics sink degrades features, it
    does not take the service down.
    """
    state = request.app.state
    cache = getattr(state, "cache", None)
    return ReadinessResponse(
        database=bool(get_settings().database_url),
        cache=bool(cache is not None and cache.is_available()),
        usage_tracking=getattr(state, "usage_tracker", None) is not None,
    )
