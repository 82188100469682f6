"""Call context: the single carrier of ambient state through a procedure pipeline.

Frozen; middleware that adds information (the access guard adds org_id and
user_role) passes a dataclasses.replace() copy to the next stage.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from backoffice.shared.background import BackgroundTaskRunner, get_background_runner

if TYPE_CHECKING:
    from starlette.datastructures import Headers

    from backoffice.application.interfaces.repositories import IAuditLogStore
    from backoffice.application.interfaces.services import IAnalyticsSink, IRoleResolver
    from backoffice.domain.enums import OrgRole


@dataclass(frozen=True)
class CallContext:
    """Per-call state: caller identity, injected collaborators, request metadata.

    org_id and user_role are None until an access guard has admitted the call.
    on_admitted, when set, is told which organization the guard admitted
    the call for (the HTTP layer meters API calls with it).
    """

    user_id: str | None = None
    role_resolver: IRoleResolver | None = None
    audit_store: IAuditLogStore | None = None
    analytics: IAnalyticsSink | None = None
    background: BackgroundTaskRunner = field(default_factory=get_background_runner)
    headers: Mapping[str, str] | Headers = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    request_id: str | None = None
    org_id: str | None = None
    user_role: OrgRole | None = None
    services: Mapping[str, Any] = field(default_factory=dict)
    on_admitted: Callable[[str], None] | None = None

    def service(self, name: str) -> Any:
        """Return a handler-level collaborator registered under name.

        Raises:
            KeyError: If nothing is registered under name.
        """
        return self.services[name]


def read_field(source: Any, name: str) -> Any:
    """Read name from a mapping key or an attribute; None when absent."""
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)
