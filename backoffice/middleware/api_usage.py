"""API usage metering middleware.

Records method, path, status code and latency of every /api/v1 call
an access guard admitted for an organization. Unauthenticated calls and
calls rejected by a guard are not metered. The write is scheduled on
the background runner after the response is produced; metering never
changes the response.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backoffice.application.dtos.usage import ApiCallCreate
from backoffice.application.services.usage_tracker import UsageTracker
from backoffice.infrastructure.security.jwt import verify_token
from backoffice.shared.background import get_background_runner
from backoffice.shared.request_audit import extract_ip_address, extract_user_agent

logger = logging.getLogger(__name__)

METERED_PREFIX = "/api/v1"
METERED_ORG_STATE = "metered_org_id"


def _user_id(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        return None
    try:
        return verify_token(auth[7:].strip()).get("sub")
    except ValueError:
        return None


def admitted_org_id(request: Request) -> str | None:
    """Organization the access guard admitted this request for, if any."""
    return getattr(request.state, METERED_ORG_STATE, None)


def mark_admitted(request: Request, org_id: str) -> None:
    setattr(request.state, METERED_ORG_STATE, org_id)


def ApiUsageMiddleware(app: Callable) -> Callable:
    """Meter /api/v1 calls through the UsageTracker stored on app.state.usage_tracker."""

    class _Middleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next: Callable) -> Response:
            if not request.url.path.startswith(METERED_PREFIX):
                return await call_next(request)
            # Binds scope["state"] now so the endpoint's request shares it.
            setattr(request.state, METERED_ORG_STATE, None)
            started = time.perf_counter()
            response = await call_next(request)
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            try:
                self._schedule(request, response.status_code, elapsed_ms)
            except Exception:
                logger.warning("Failed to schedule API usage record", exc_info=True)
            return response

        def _schedule(self, request: Request, status_code: int, elapsed_ms: int) -> None:
            tracker: UsageTracker | None = getattr(
                request.app.state, "usage_tracker", None
            )
            org_id = admitted_org_id(request)
            if tracker is None or not org_id:
                return
            call = ApiCallCreate(
                org_id=org_id,
                user_id=_user_id(request),
                endpoint=request.url.path,
                method=request.method,
                status_code=status_code,
                response_time_ms=elapsed_ms,
                ip_address=extract_ip_address(request.headers)
                or (request.client.host if request.client else None),
                user_agent=extract_user_agent(request.headers),
            )
            get_background_runner().spawn(
                tracker.track_api_call(call), name=f"api_usage:{request.method}"
            )

    return _Middleware(app)
