"""Procedure pipeline: an ordered list of (ctx, input, next) stages folded around a handler.

    proc = (
        Procedure(update_org)
        .use(require_owner(org_id_field="org_id"))
        .use(audit_update(AuditEntityType.ORG, "org_id", fetch_before_state=...))
    )
    result = await proc(ctx, {"org_id": ..., "name": ...})

Stages run in the order they were added; the first added is outermost.
An access guard may not be added after an audit stage, so guard ->
handler -> audit holds for every composed procedure.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from functools import reduce
from typing import Any

from backoffice.pipeline.context import CallContext

Next = Callable[[CallContext, Any], Awaitable[Any]]
Handler = Callable[[CallContext, Any], Awaitable[Any]]
Middleware = Callable[[CallContext, Any, Next], Awaitable[Any]]


class PipelineStage(str, Enum):
    """Tag attached to middleware so composition order can be checked."""

    GUARD = "guard"
    AUDIT = "audit"


def tag_stage(middleware: Middleware, stage: PipelineStage) -> Middleware:
    middleware.pipeline_stage = stage  # type: ignore[attr-defined]
    return middleware


def stage_of(middleware: Middleware) -> PipelineStage | None:
    return getattr(middleware, "pipeline_stage", None)


def _bind(middleware: Middleware, next_call: Next) -> Next:
    async def call(ctx: CallContext, input: Any) -> Any:
        return await middleware(ctx, input, next_call)

    return call


def compose(middlewares: Sequence[Middleware], handler: Handler) -> Next:
    """Fold middlewares (outermost first) around handler into one callable."""
    return reduce(lambda inner, mw: _bind(mw, inner), reversed(middlewares), handler)


class Procedure:
    """Immutable handler + middleware chain; use() returns a new Procedure."""

    def __init__(self, handler: Handler, middlewares: Sequence[Middleware] = ()) -> None:
        self.handler = handler
        self.middlewares: tuple[Middleware, ...] = tuple(middlewares)
        self._call = compose(self.middlewares, handler)

    def use(self, middleware: Middleware) -> Procedure:
        """Append a stage (it runs inside every stage added before it).

        Raises:
            ValueError: If an access guard is added after an audit stage.
        """
        if stage_of(middleware) is PipelineStage.GUARD and any(
            stage_of(mw) is PipelineStage.AUDIT for mw in self.middlewares
        ):
            raise ValueError("Access guard must be added before audit middleware")
        return Procedure(self.handler, (*self.middlewares, middleware))

    async def __call__(self, ctx: CallContext, input: Any = None) -> Any:
        return await self._call(ctx, input)
