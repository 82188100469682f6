"""Product analytics sink posting capture events to a PostHog-compatible endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from backoffice.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class HttpAnalyticsSink:
    """IAnalyticsSink over httpx. Raises on transport or HTTP errors; callers run it in the background."""

    def __init__(
        self,
        host: str,
        api_key: str,
        *,
        timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = f"{host.rstrip('/')}/capture/"
        self._api_key = api_key
        self._http = (
            http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        )
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        """Close the HTTP client only if this sink created it."""
        if self._owns_http:
            await self._http.aclose()

    async def capture(
        self, distinct_id: str, event: str, properties: dict[str, Any]
    ) -> None:
        response = await self._http.post(
            self._url,
            json={
                "api_key": self._api_key,
                "event": event,
                "distinct_id": distinct_id,
                "properties": properties,
                "timestamp": utc_now().isoformat(),
            },
        )
        response.raise_for_status()
        logger.debug("Analytics event %s sent for %s", event, distinct_id)
