"""Access guard tests: org id sources, rank comparison, fail-closed role resolution."""

import pytest

from backoffice.domain.enums import OrgRole
from backoffice.domain.exceptions import (
    AuthorizationException,
    BadRequestException,
    ResourceNotFoundException,
)
from backoffice.pipeline import (
    OrgIdSource,
    Procedure,
    create_access_guard,
    require_admin,
    require_contributor,
    require_member,
    require_owner,
)


async def _echo(ctx, input):
    return {"org_id": ctx.org_id, "role": ctx.user_role, "input": input}


async def test_viewer_rejected_where_member_required(make_ctx, membership_store) -> None:
    """Forbidden, naming the required and the actual role."""
    membership_store.add("t1", "user_1", OrgRole.VIEWER)
    proc = Procedure(_echo).use(require_contributor())

    with pytest.raises(AuthorizationException) as exc_info:
        await proc(make_ctx(), {"org_id": "t1"})

    exc = exc_info.value
    assert exc.error_code == "PERMISSION_DENIED"
    assert exc.details == {"required_role": "member", "actual_role": "viewer"}
    assert "member" in exc.message and "viewer" in exc.message


@pytest.mark.parametrize(
    ("role", "preset", "admitted"),
    [
        (OrgRole.VIEWER, require_member, True),
        (OrgRole.VIEWER, require_contributor, False),
        (OrgRole.MEMBER, require_contributor, True),
        (OrgRole.MEMBER, require_admin, False),
        (OrgRole.ADMIN, require_admin, True),
        (OrgRole.ADMIN, require_owner, False),
        (OrgRole.OWNER, require_owner, True),
        (OrgRole.OWNER, require_member, True),
    ],
)
async def test_presets(make_ctx, membership_store, role, preset, admitted) -> None:
    membership_store.add("t1", "user_1", role)
    proc = Procedure(_echo).use(preset())
    if admitted:
        result = await proc(make_ctx(), {"org_id": "t1"})
        assert result["role"] is role
    else:
        with pytest.raises(AuthorizationException):
            await proc(make_ctx(), {"org_id": "t1"})


async def test_admitted_call_sees_org_and_role(make_ctx, membership_store) -> None:
    membership_store.add("t1", "user_1", OrgRole.ADMIN)
    proc = Procedure(_echo).use(require_member())
    result = await proc(make_ctx(), {"org_id": "t1"})
    assert result["org_id"] == "t1"
    assert result["role"] is OrgRole.ADMIN


async def test_non_member_rejected_with_actual_none(make_ctx) -> None:
    proc = Procedure(_echo).use(require_member())
    with pytest.raises(AuthorizationException) as exc_info:
        await proc(make_ctx(), {"org_id": "t1"})
    assert exc_info.value.details["actual_role"] == "none"


async def test_missing_org_id_is_bad_request(make_ctx) -> None:
    proc = Procedure(_echo).use(require_member())
    with pytest.raises(BadRequestException) as exc_info:
        await proc(make_ctx(), {"name": "x"})
    assert exc_info.value.details == {"field": "org_id"}


async def test_org_id_from_custom_input_field(make_ctx, membership_store) -> None:
    membership_store.add("t1", "user_1", OrgRole.MEMBER)
    proc = Procedure(_echo).use(require_member(org_id_field="organization_id"))
    result = await proc(make_ctx(), {"organization_id": "t1"})
    assert result["org_id"] == "t1"


async def test_org_id_from_input_attribute(make_ctx, membership_store) -> None:
    class Payload:
        org_id = "t1"

    membership_store.add("t1", "user_1", OrgRole.MEMBER)
    result = await Procedure(_echo).use(require_member())(make_ctx(), Payload())
    assert result["org_id"] == "t1"


async def test_org_id_from_context(make_ctx, membership_store) -> None:
    membership_store.add("t2", "user_1", OrgRole.MEMBER)
    proc = Procedure(_echo).use(require_member(org_id_source=OrgIdSource.CONTEXT))
    result = await proc(make_ctx(org_id="t2"), {"org_id": "ignored"})
    assert result["org_id"] == "t2"


async def test_org_id_from_params(make_ctx, membership_store) -> None:
    membership_store.add("t3", "user_1", OrgRole.MEMBER)
    proc = Procedure(_echo).use(require_member(org_id_source="param"))
    result = await proc(make_ctx(params={"org_id": "t3"}), None)
    assert result["org_id"] == "t3"


async def test_context_source_without_org_is_bad_request(make_ctx) -> None:
    proc = Procedure(_echo).use(require_member(org_id_source=OrgIdSource.CONTEXT))
    with pytest.raises(BadRequestException):
        await proc(make_ctx(), {"org_id": "t1"})


async def test_custom_role_resolver_replaces_membership_lookup(
    make_ctx, membership_store
) -> None:
    seen = []

    async def super_admin(ctx, org_id, input):
        seen.append((ctx.user_id, org_id))
        return "owner"

    proc = Procedure(_echo).use(
        create_access_guard(OrgRole.OWNER, custom_role_resolver=super_admin)
    )
    result = await proc(make_ctx(), {"org_id": "t1"})
    assert result["role"] is OrgRole.OWNER
    assert seen == [("user_1", "t1")]
    assert membership_store.lookups == 0


async def test_store_failure_denies(make_ctx, membership_store) -> None:
    """A failing membership lookup resolves to no role, which is rejected."""
    membership_store.add("t1", "user_1", OrgRole.OWNER)
    membership_store.fail = True
    proc = Procedure(_echo).use(require_member())
    with pytest.raises(AuthorizationException):
        await proc(make_ctx(), {"org_id": "t1"})


async def test_resolver_error_fails_closed(make_ctx) -> None:
    async def broken(ctx, org_id, input):
        raise RuntimeError("boom")

    proc = Procedure(_echo).use(
        create_access_guard(OrgRole.VIEWER, custom_role_resolver=broken)
    )
    with pytest.raises(AuthorizationException) as exc_info:
        await proc(make_ctx(), {"org_id": "t1"})
    assert exc_info.value.message == "Failed to verify permissions"


async def test_unknown_stored_role_denies(make_ctx, membership_store) -> None:
    membership_store.add("t1", "user_1", "superuser")
    proc = Procedure(_echo).use(require_member())
    with pytest.raises(AuthorizationException):
        await proc(make_ctx(), {"org_id": "t1"})


async def test_anonymous_caller_is_rejected(make_ctx) -> None:
    proc = Procedure(_echo).use(require_member())
    with pytest.raises(AuthorizationException):
        await proc(make_ctx(user_id=None), {"org_id": "t1"})


async def test_handler_errors_pass_through_unchanged(make_ctx, membership_store) -> None:
    membership_store.add("t1", "user_1", OrgRole.OWNER)

    async def missing(ctx, input):
        raise ResourceNotFoundException("org", "t1")

    proc = Procedure(missing).use(require_member())
    with pytest.raises(ResourceNotFoundException):
        await proc(make_ctx(), {"org_id": "t1"})


async def test_rejected_call_never_reaches_handler(make_ctx, membership_store) -> None:
    membership_store.add("t1", "user_1", OrgRole.VIEWER)
    called = []

    async def handler(ctx, input):
        called.append(True)

    with pytest.raises(AuthorizationException):
        await Procedure(handler).use(require_owner())(make_ctx(), {"org_id": "t1"})
    assert called == []


async def test_admitted_org_is_reported(make_ctx, membership_store) -> None:
    membership_store.add("t1", "user_1", OrgRole.MEMBER)
    admitted: list[str] = []
    proc = Procedure(_echo).use(require_member())
    await proc(make_ctx(on_admitted=admitted.append), {"org_id": "t1"})
    assert admitted == ["t1"]


async def test_rejected_org_is_not_reported(make_ctx, membership_store) -> None:
    membership_store.add("t1", "user_1", OrgRole.VIEWER)
    admitted: list[str] = []
    with pytest.raises(AuthorizationException):
        await Procedure(_echo).use(require_admin())(
            make_ctx(on_admitted=admitted.append), {"org_id": "t1"}
        )
    with pytest.raises(AuthorizationException):
        await Procedure(_echo).use(require_member())(
            make_ctx(on_admitted=admitted.append), {"org_id": "t2"}
        )
    assert admitted == []


async def test_guard_records_span(make_ctx, membership_store, span_exporter) -> None:
    membership_store.add("t1", "user_1", OrgRole.ADMIN)
    await Procedure(_echo).use(require_member())(make_ctx(), {"org_id": "t1"})

    (span,) = span_exporter.get_finished_spans()
    assert span.name == "access_guard"
    assert span.attributes["org.id"] == "t1"
    assert span.attributes["guard.required_role"] == "viewer"
    assert span.attributes["guard.actual_role"] == "admin"


async def test_denied_guard_span_has_error_status(
    make_ctx, membership_store, span_exporter
) -> None:
    from opentelemetry.trace import StatusCode

    membership_store.add("t1", "user_1", OrgRole.VIEWER)
    with pytest.raises(AuthorizationException):
        await Procedure(_echo).use(require_owner())(make_ctx(), {"org_id": "t1"})

    (span,) = span_exporter.get_finished_spans()
    assert span.status.status_code is StatusCode.ERROR
