"""Shared utilities: enums, request helpers, background tasks, telemetry.

Used by the pipeline, application and infrastructure. No business logic.
"""

from backoffice.shared.background import BackgroundTaskRunner, get_background_runner
from backoffice.shared.enums import (
    ActivePeriod,
    AuditAction,
    AuditEntityType,
    AuditStatsWindow,
    UsageEventType,
)
from backoffice.shared.request_audit import extract_ip_address, extract_user_agent

__all__ = [
    "ActivePeriod",
    "AuditAction",
    "AuditEntityType",
    "AuditStatsWindow",
    "BackgroundTaskRunner",
    "UsageEventType",
    "extract_ip_address",
    "extract_user_agent",
    "get_background_runner",
]
