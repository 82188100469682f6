"""Shared enumerations for the back-office application.

Cross-cutting enums used by the pipeline, application and infrastructure
(audit, usage metering). Domain-specific enums (e.g. OrgRole) live in
backoffice.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class AuditAction(_ValuesMixin, str, Enum):
    """Audit action types recorded by the audit middleware."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    COMPLETED = "completed"
    SNOOZED = "snoozed"
    CANCELLED = "cancelled"
    INVITED = "invited"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ROLE_CHANGED = "role_changed"
    REMOVED = "removed"
    STARTED = "started"
    STOPPED = "stopped"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


class AuditEntityType(_ValuesMixin, str, Enum):
    """Entity types that appear in audit records."""

    ORG = "org"
    RECORD = "record"
    REMINDER = "reminder"
    SUBSCRIPTION = "subscription"
    MEMBER = "member"
    INVITE = "invite"
    SCHEDULE = "schedule"
    AUTOMATION = "automation"


class UsageEventType(_ValuesMixin, str, Enum):
    """Metered event types recorded by the usage tracker."""

    RECORD_CREATED = "record_created"
    API_CALL = "api_call"
    AUTOMATION_RUN = "automation_run"
    STORAGE_USED = "storage_used"
    SCHEDULE_EXECUTED = "schedule_executed"
    AI_TOKENS_USED = "ai_tokens_used"
    USER_ACTIVE = "user_active"


class ActivePeriod(_ValuesMixin, str, Enum):
    """Period types for active-user counts (DAU/WAU/MAU)."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class AuditStatsWindow(_ValuesMixin, str, Enum):
    """Look-back windows for audit statistics."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
