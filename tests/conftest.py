"""Pytest configuration and fixtures for the back-office service.

HTTP tests run against create_app() with in-memory stores swapped in via
dependency_overrides and app.state; no Postgres or Redis is needed.
"""

import fnmatch
import os
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ANALYTICS_ENABLED", "false")

import pytest
from httpx import ASGITransport, AsyncClient

from backoffice.application.dtos.audit_log import (
    AuditLogEntryCreate,
    AuditLogResult,
    AuditStats,
)
from backoffice.application.dtos.membership import (
    InviteResult,
    MembershipResult,
    OrganizationResult,
)
from backoffice.application.dtos.usage import (
    ApiCallCreate,
    ApiUsageStat,
    StorageUsageResult,
    UsageEventCreate,
    UsageEventResult,
)
from backoffice.application.services.role_resolver import RoleResolver
from backoffice.application.services.usage_tracker import UsageTracker
from backoffice.core.config import get_settings
from backoffice.domain.enums import InviteStatus, OrgRole
from backoffice.infrastructure.security.jwt import create_access_token
from backoffice.pipeline.context import CallContext
from backoffice.shared.background import BackgroundTaskRunner, get_background_runner
from backoffice.shared.enums import UsageEventType
from backoffice.shared.utils.datetime import utc_now


class FakeMembershipStore:
    """In-memory IMembershipStore. Set fail=True to make lookups raise.

    commits counts commit() calls; set fail_commit=True to make commit()
    raise after the staged change is applied.
    """

    def __init__(self, roles: dict[tuple[str, str], str] | None = None) -> None:
        self.roles: dict[tuple[str, str], str] = dict(roles or {})
        self.fail = False
        self.fail_commit = False
        self.lookups = 0
        self.commits = 0
        self.on_commit: Any = None

    def add(self, org_id: str, user_id: str, role: OrgRole | str) -> None:
        self.roles[(org_id, user_id)] = role.value if isinstance(role, OrgRole) else role

    async def commit(self) -> None:
        if self.on_commit is not None:
            self.on_commit()
        if self.fail_commit:
            raise ConnectionError("commit failed")
        self.commits += 1

    async def get_membership(self, org_id: str, user_id: str) -> MembershipResult | None:
        self.lookups += 1
        if self.fail:
            raise ConnectionError("membership store unavailable")
        role = self.roles.get((org_id, user_id))
        if role is None:
            return None
        return MembershipResult(org_id=org_id, user_id=user_id, role=role)

    async def list_members(self, org_id: str) -> list[MembershipResult]:
        return [
            MembershipResult(org_id=o, user_id=u, role=r)
            for (o, u), r in self.roles.items()
            if o == org_id
        ]

    async def count_members(self, org_id: str) -> int:
        return sum(1 for (o, _) in self.roles if o == org_id)

    async def count_owners(self, org_id: str) -> int:
        return sum(
            1 for (o, _), r in self.roles.items() if o == org_id and r == OrgRole.OWNER.value
        )

    async def add_member(self, org_id: str, user_id: str, role: OrgRole) -> MembershipResult:
        self.roles[(org_id, user_id)] = role.value
        return MembershipResult(org_id=org_id, user_id=user_id, role=role.value)

    async def update_role(
        self, org_id: str, user_id: str, role: OrgRole
    ) -> MembershipResult | None:
        if (org_id, user_id) not in self.roles:
            return None
        self.roles[(org_id, user_id)] = role.value
        return MembershipResult(org_id=org_id, user_id=user_id, role=role.value)

    async def delete_membership(self, org_id: str, user_id: str) -> bool:
        return self.roles.pop((org_id, user_id), None) is not None


class FakeOrganizationStore:
    def __init__(self) -> None:
        self.orgs: dict[str, OrganizationResult] = {}
        self.commits = 0

    def add(self, org_id: str, name: str = "Acme", settings: dict | None = None) -> None:
        self.orgs[org_id] = OrganizationResult(
            id=org_id, name=name, slug=name.lower(), settings=dict(settings or {})
        )

    async def commit(self) -> None:
        self.commits += 1

    async def get_by_id(self, org_id: str) -> OrganizationResult | None:
        return self.orgs.get(org_id)

    async def update(
        self, org_id: str, *, name: str | None = None, settings: dict | None = None
    ) -> OrganizationResult | None:
        org = self.orgs.get(org_id)
        if org is None:
            return None
        updated = OrganizationResult(
            id=org.id,
            name=name if name is not None else org.name,
            slug=org.slug,
            settings={**org.settings, **(settings or {})},
        )
        self.orgs[org_id] = updated
        return updated


class FakeInviteStore:
    """In-memory IInviteStore. Tokens are tok_<n>."""

    def __init__(self) -> None:
        self.invites: list[InviteResult] = []
        self.commits = 0

    async def commit(self) -> None:
        self.commits += 1

    def _replace(self, invite_id: str, **changes: Any) -> InviteResult | None:
        for i, invite in enumerate(self.invites):
            if invite.id == invite_id:
                self.invites[i] = replace(invite, **changes)
                return self.invites[i]
        return None

    def add(
        self,
        org_id: str,
        email: str,
        role: OrgRole = OrgRole.MEMBER,
        *,
        expires_at: datetime | None = None,
        status: InviteStatus = InviteStatus.PENDING,
        invited_by: str | None = "user_owner",
    ) -> InviteResult:
        n = len(self.invites) + 1
        invite = InviteResult(
            id=f"inv_{n}",
            org_id=org_id,
            email=email.lower(),
            role=role,
            invited_by=invited_by,
            status=status,
            expires_at=expires_at or utc_now() + timedelta(days=7),
            created_at=utc_now(),
            token=f"tok_{n}",
        )
        self.invites.append(invite)
        return invite

    async def create_invite(
        self,
        org_id: str,
        email: str,
        role: OrgRole,
        invited_by: str | None,
        expires_at: datetime,
    ) -> InviteResult:
        return self.add(org_id, email, role, expires_at=expires_at, invited_by=invited_by)

    async def get_pending_by_email(self, org_id: str, email: str) -> InviteResult | None:
        for invite in self.invites:
            if (
                invite.org_id == org_id
                and invite.email == email.lower()
                and invite.status is InviteStatus.PENDING
            ):
                return replace(invite, token=None)
        return None

    async def get_by_id(self, org_id: str, invite_id: str) -> InviteResult | None:
        for invite in self.invites:
            if invite.id == invite_id and invite.org_id == org_id:
                return replace(invite, token=None)
        return None

    async def get_by_token(self, token: str) -> InviteResult | None:
        return next((i for i in self.invites if i.token == token), None)

    async def list_pending(self, org_id: str) -> list[InviteResult]:
        return [
            replace(i, token=None)
            for i in self.invites
            if i.org_id == org_id and i.status is InviteStatus.PENDING
        ]

    async def set_status(self, invite_id: str, status: InviteStatus) -> InviteResult | None:
        return self._replace(invite_id, status=status)


class FakeAuditStore:
    """In-memory audit store and reader. Set fail=True to make create() raise."""

    def __init__(self) -> None:
        self.entries: list[AuditLogResult] = []
        self.fail = False

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        if self.fail:
            raise ConnectionError("audit store unavailable")
        row = AuditLogResult(
            id=f"audit_{len(self.entries) + 1}",
            org_id=entry.org_id,
            actor_id=entry.actor_id,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            metadata=entry.metadata,
            created_at=utc_now(),
        )
        self.entries.append(row)
        return row

    def _matching(self, org_id: str, **filters: Any) -> list[AuditLogResult]:
        rows = [e for e in self.entries if e.org_id == org_id]
        for name in ("entity_type", "action", "actor_id"):
            if filters.get(name) is not None:
                rows = [e for e in rows if getattr(e, name) == filters[name]]
        return sorted(rows, key=lambda e: e.created_at, reverse=True)

    async def list(
        self, org_id: str, *, skip: int = 0, limit: int = 50, **filters: Any
    ) -> list[AuditLogResult]:
        return self._matching(org_id, **filters)[skip : skip + limit]

    async def count(self, org_id: str, **filters: Any) -> int:
        return len(self._matching(org_id, **filters))

    async def stats(self, org_id: str, since: datetime) -> AuditStats:
        rows = [e for e in self.entries if e.org_id == org_id and e.created_at >= since]
        return AuditStats(
            by_action=dict(Counter(e.action for e in rows)),
            by_entity_type=dict(Counter(e.entity_type for e in rows)),
            by_actor=dict(Counter(e.actor_id or "system" for e in rows)),
            total=len(rows),
        )


class FakeAnalyticsSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []
        self.fail = False

    async def capture(self, distinct_id: str, event: str, properties: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("analytics unavailable")
        self.events.append((distinct_id, event, properties))


class FakeCache:
    """In-memory ICacheService."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}

    def is_available(self) -> bool:
        return True

    async def get(self, key: str) -> Any:
        return self.data.get(key)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self.data[key] = value
        return True

    async def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        keys = [k for k in self.data if fnmatch.fnmatch(k, pattern)]
        for key in keys:
            del self.data[key]
        return len(keys)


class FakeUsageStore:
    """In-memory IUsageStore. Set fail=True to make every call raise."""

    def __init__(self) -> None:
        self.events: list[UsageEventResult] = []
        self.api_calls: list[ApiCallCreate] = []
        self.batches = 0
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("usage store unavailable")

    def add_event(
        self,
        org_id: str,
        user_id: str,
        event_type: UsageEventType | str,
        created_at: datetime,
        quantity: int = 1,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.events.append(
            UsageEventResult(
                id=f"evt_{len(self.events) + 1}",
                org_id=org_id,
                user_id=user_id,
                event_type=UsageEventType(event_type).value,
                quantity=quantity,
                metadata=dict(metadata or {}),
                created_at=created_at,
            )
        )

    async def create_event(self, data: UsageEventCreate) -> None:
        self._check()
        self.add_event(
            data.org_id, data.user_id, data.event_type, utc_now(), data.quantity, data.metadata
        )

    async def create_events(self, data: list[UsageEventCreate]) -> None:
        self._check()
        self.batches += 1
        for event in data:
            self.add_event(
                event.org_id, event.user_id, event.event_type, utc_now(),
                event.quantity, event.metadata,
            )

    async def create_api_call(self, data: ApiCallCreate) -> None:
        self._check()
        self.api_calls.append(data)

    async def list_events(
        self, org_id: str, start: datetime, end: datetime, event_type: str | None = None
    ) -> list[UsageEventResult]:
        self._check()
        rows = [
            e
            for e in self.events
            if e.org_id == org_id
            and start <= e.created_at <= end
            and (event_type is None or e.event_type == event_type)
        ]
        return sorted(rows, key=lambda e: e.created_at, reverse=True)

    async def count_events(
        self, org_id: str, event_type: str, since: datetime | None = None
    ) -> int:
        self._check()
        return sum(
            1
            for e in self.events
            if e.org_id == org_id
            and e.event_type == event_type
            and (since is None or e.created_at >= since)
        )

    async def sum_quantity(
        self, org_id: str, event_type: str, since: datetime | None = None
    ) -> int:
        self._check()
        return sum(
            e.quantity
            for e in self.events
            if e.org_id == org_id
            and e.event_type == event_type
            and (since is None or e.created_at >= since)
        )

    async def count_api_calls(self, org_id: str, since: datetime | None = None) -> int:
        self._check()
        return sum(1 for c in self.api_calls if c.org_id == org_id)

    async def api_usage_stats(
        self, org_id: str, start: datetime, end: datetime
    ) -> list[ApiUsageStat]:
        self._check()
        groups: dict[tuple[str, str], list[ApiCallCreate]] = {}
        for call in self.api_calls:
            if call.org_id == org_id:
                groups.setdefault((call.endpoint, call.method), []).append(call)
        stats = []
        for (endpoint, method), calls in groups.items():
            errors = sum(1 for c in calls if c.status_code >= 400)
            stats.append(
                ApiUsageStat(
                    endpoint=endpoint,
                    method=method,
                    call_count=len(calls),
                    avg_response_time=sum(c.response_time_ms for c in calls) / len(calls),
                    error_count=errors,
                    error_rate=errors / len(calls) * 100,
                )
            )
        return stats

    async def active_users_count(self, org_id: str, start: datetime, end: datetime) -> int:
        self._check()
        return len(
            {
                e.user_id
                for e in self.events
                if e.org_id == org_id
                and e.event_type == UsageEventType.USER_ACTIVE.value
                and start <= e.created_at < end
            }
        )

    async def storage_usage(self, org_id: str) -> StorageUsageResult:
        self._check()
        rows = [
            e
            for e in self.events
            if e.org_id == org_id and e.event_type == UsageEventType.STORAGE_USED.value
        ]
        if not rows:
            return StorageUsageResult()
        return StorageUsageResult(
            total_bytes=sum(e.quantity for e in rows),
            file_count=len(rows),
            last_updated=max(e.created_at for e in rows),
        )

    async def aggregate_daily(self, start: datetime, end: datetime) -> int:
        self._check()
        keys = {
            (e.org_id, e.event_type)
            for e in self.events
            if start <= e.created_at < end
        }
        return len(keys)


class FakePlanCatalog:
    def __init__(self) -> None:
        self.subscriptions: dict[str, str] = {}
        self.limits: dict[str, dict[str, int]] = {}
        self.fail = False

    def subscribe(self, org_id: str, plan_name: str, limits: dict[str, int]) -> None:
        self.subscriptions[org_id] = plan_name
        self.limits[plan_name] = dict(limits)

    async def get_active_plan(self, org_id: str) -> str | None:
        if self.fail:
            raise ConnectionError("plan catalog unavailable")
        return self.subscriptions.get(org_id)

    async def get_feature_limit(self, plan_name: str, metric_key: str) -> int | None:
        return self.limits.get(plan_name, {}).get(metric_key)

    async def list_feature_limits(self, plan_name: str) -> dict[str, int]:
        return dict(self.limits.get(plan_name, {}))


# Fixtures


@pytest.fixture
def membership_store() -> FakeMembershipStore:
    return FakeMembershipStore()


@pytest.fixture
def organization_store() -> FakeOrganizationStore:
    return FakeOrganizationStore()


@pytest.fixture
def invite_store() -> FakeInviteStore:
    return FakeInviteStore()


@pytest.fixture
def audit_store() -> FakeAuditStore:
    return FakeAuditStore()


@pytest.fixture
def analytics() -> FakeAnalyticsSink:
    return FakeAnalyticsSink()


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def usage_store() -> FakeUsageStore:
    return FakeUsageStore()


@pytest.fixture
def plan_catalog() -> FakePlanCatalog:
    return FakePlanCatalog()


@pytest.fixture
def tracker(usage_store: FakeUsageStore, plan_catalog: FakePlanCatalog) -> UsageTracker:
    return UsageTracker(usage_store, plan_catalog)


@pytest.fixture
def runner() -> BackgroundTaskRunner:
    """Private background runner so tests can drain only their own tasks."""
    return BackgroundTaskRunner()


@pytest.fixture
def make_ctx(membership_store, audit_store, analytics, runner):
    """Factory for CallContext wired to the in-memory stores."""

    def _make(user_id: str | None = "user_1", **overrides: Any) -> CallContext:
        fields: dict[str, Any] = {
            "user_id": user_id,
            "role_resolver": RoleResolver(membership_store),
            "audit_store": audit_store,
            "analytics": analytics,
            "background": runner,
        }
        fields.update(overrides)
        return CallContext(**fields)

    return _make


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for a user id (plus optional X-Org-ID and email claim)."""

    def _headers(
        user_id: str, org_id: str | None = None, email: str | None = None
    ) -> dict[str, str]:
        claims = {"email": email} if email else {}
        token = create_access_token(user_id, **claims)
        headers = {"Authorization": f"Bearer {token}"}
        if org_id:
            headers[get_settings().org_header_name] = org_id
        return headers

    return _headers


@pytest.fixture
def app(
    membership_store,
    organization_store,
    invite_store,
    audit_store,
    analytics,
    tracker,
):
    """FastAPI app with in-memory stores (lifespan does not run under ASGITransport)."""
    from backoffice.api.v1 import dependencies as deps
    from backoffice.main import create_app

    application = create_app()
    application.state.cache = None
    application.state.analytics = analytics
    application.state.audit_store = audit_store
    application.state.usage_tracker = tracker
    application.dependency_overrides.update(
        {
            deps.get_membership_store: lambda: membership_store,
            deps.get_membership_store_for_write: lambda: membership_store,
            deps.get_organization_store: lambda: organization_store,
            deps.get_organization_store_for_write: lambda: organization_store,
            deps.get_invite_store: lambda: invite_store,
            deps.get_audit_log_reader: lambda: audit_store,
        }
    )
    return application


@pytest.fixture
async def client(app) -> AsyncClient:
    """Async HTTP client against the app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await get_background_runner().drain(timeout=5)


@pytest.fixture
def drain():
    """Await the process-wide background runner (audit and usage writes from requests)."""

    async def _drain() -> None:
        await get_background_runner().drain(timeout=5)

    return _drain


@pytest.fixture
def span_exporter(monkeypatch):
    """Collect spans from the guard and audit stages in memory."""
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import SimpleSpanProcessor
    from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
        InMemorySpanExporter,
    )

    from backoffice.pipeline import access_guard, audit

    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(access_guard, "tracer", provider.get_tracer("access_guard"))
    monkeypatch.setattr(audit, "tracer", provider.get_tracer("audit"))
    yield exporter
    provider.shutdown()
