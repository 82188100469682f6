"""Analytics infrastructure (HTTP capture sink)."""

from backoffice.infrastructure.analytics.http_sink import HttpAnalyticsSink

__all__ = ["HttpAnalyticsSink"]
