"""Procedure composition tests: ordering and the guard-before-audit rule."""

import pytest

from backoffice.pipeline import (
    CallContext,
    Procedure,
    audit_update,
    compose,
    require_member,
)
from backoffice.pipeline.procedure import PipelineStage, stage_of
from backoffice.shared.enums import AuditEntityType


def _recording(name: str, calls: list[str]):
    async def middleware(ctx, input, next):
        calls.append(f"{name}:before")
        result = await next(ctx, input)
        calls.append(f"{name}:after")
        return result

    return middleware


async def test_first_added_middleware_is_outermost() -> None:
    calls: list[str] = []

    async def handler(ctx, input):
        calls.append("handler")
        return input * 2

    proc = Procedure(handler).use(_recording("a", calls)).use(_recording("b", calls))
    assert await proc(CallContext(), 21) == 42
    assert calls == ["a:before", "b:before", "handler", "b:after", "a:after"]


async def test_use_returns_new_procedure() -> None:
    async def handler(ctx, input):
        return "ok"

    base = Procedure(handler)
    extended = base.use(_recording("a", []))
    assert base.middlewares == ()
    assert len(extended.middlewares) == 1


async def test_compose_without_middleware_is_the_handler() -> None:
    async def handler(ctx, input):
        return input

    assert await compose([], handler)(CallContext(), "x") == "x"


def test_guard_after_audit_is_rejected() -> None:
    async def handler(ctx, input):
        return None

    proc = Procedure(handler).use(audit_update(AuditEntityType.ORG))
    with pytest.raises(ValueError, match="before audit"):
        proc.use(require_member())


def test_stage_tags() -> None:
    assert stage_of(require_member()) is PipelineStage.GUARD
    assert stage_of(audit_update(AuditEntityType.ORG)) is PipelineStage.AUDIT
    assert stage_of(_recording("x", [])) is None
