"""Organization context middleware.

Sets the current organization id (see backoffice.core.tenant_context)
from the X-Org-ID header, falling back to an org_id claim in the bearer
token. Guards configured with the context source read it from there.
"""

from __future__ import annotations

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backoffice.core.config import get_settings
from backoffice.core.tenant_context import set_org_id
from backoffice.infrastructure.security.jwt import verify_token

logger = logging.getLogger(__name__)


def org_id_from_request(request: Request) -> str | None:
    """Return org id from the configured header or the JWT org_id claim."""
    settings = get_settings()
    org_id = request.headers.get(settings.org_header_name)
    if org_id:
        return org_id.strip() or None
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        try:
            return verify_token(auth[7:].strip()).get("org_id")
        except ValueError:
            logger.debug("Ignoring invalid bearer token while reading org context")
    return None


def OrgContextMiddleware(app: Callable) -> Callable:
    """Set org context before the route runs; clear it afterwards."""

    class _Middleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next: Callable) -> Response:
            set_org_id(org_id_from_request(request))
            try:
                return await call_next(request)
            finally:
                set_org_id(None)

    return _Middleware(app)
