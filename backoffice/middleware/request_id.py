"""Request ID middleware (raw ASGI).

Forwards a client X-Request-ID when it is safe to log, otherwise
generates one. Stores it in scope["state"]["request_id"] and echoes it
on the response.
"""

import re
import uuid
from typing import Callable

from starlette.datastructures import Headers, MutableHeaders

REQUEST_ID_MAX_LENGTH = 64
_SAFE_REQUEST_ID = re.compile(r"^[a-zA-Z0-9_-]{1,%d}$" % REQUEST_ID_MAX_LENGTH)


def sanitize_request_id(raw: str | None) -> str:
    """Return raw (stripped) if it matches the safe pattern, else a new UUID4."""
    candidate = (raw or "").strip()
    if _SAFE_REQUEST_ID.match(candidate):
        return candidate
    return str(uuid.uuid4())


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    """Wrap app so every HTTP request and response carries a request id."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        request_id = sanitize_request_id(Headers(scope=scope).get(header_name))
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[header_name] = request_id
            await send(message)

        await app(scope, receive, send_with_id)

    return asgi_app
