"""Shared helpers for audit and usage logging: derive client identity from request headers.

Accepts either a Starlette Headers object (case-insensitive) or a plain
mapping of header name to value. Extraction is best-effort: malformed
input yields None, never an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from starlette.datastructures import Headers
from starlette.requests import Request

logger = logging.getLogger(__name__)

# Checked in order; first non-empty header wins.
IP_HEADERS: tuple[str, ...] = (
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",  # Cloudflare
    "x-client-ip",
    "x-cluster-client-ip",
)


def _header(headers: Mapping[str, str] | Headers, name: str) -> str | None:
    """Return header value for name. Plain mappings are matched case-insensitively."""
    if isinstance(headers, Headers):
        return headers.get(name)
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if isinstance(key, str) and key.lower() == name:
            return candidate
    return None


def extract_ip_address(headers: Mapping[str, str] | Headers | None) -> str | None:
    """Return the client IP from proxy headers, or None.

    Comma-separated values (X-Forwarded-For chains) yield the first hop.
    """
    if not headers:
        return None
    try:
        for name in IP_HEADERS:
            value = _header(headers, name)
            if value:
                first = value.split(",")[0].strip()
                if first:
                    return first
    except (AttributeError, TypeError):
        logger.warning("Could not extract IP address from headers", exc_info=True)
    return None


def extract_user_agent(headers: Mapping[str, str] | Headers | None) -> str | None:
    """Return the User-Agent header value, or None."""
    if not headers:
        return None
    try:
        return _header(headers, "user-agent") or None
    except (AttributeError, TypeError):
        logger.warning("Could not extract user agent from headers", exc_info=True)
        return None


def get_audit_request_context(request: Request) -> tuple[str | None, str | None, str | None]:
    """Return (request_id, ip_address, user_agent) for a Starlette request.

    IP falls back to request.client.host when no proxy header is present.
    """
    request_id = getattr(request.state, "request_id", None)
    client_host = request.client.host if request.client else None
    ip_address = extract_ip_address(request.headers) or client_host
    user_agent = extract_user_agent(request.headers)
    return (request_id, ip_address, user_agent)
