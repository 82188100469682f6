"""Organization (tenant) context for the current request.

Middleware sets the current org_id in this context variable from the
X-Org-ID header so that pipeline contexts built for the request can carry
it as the ambient tenant (guards configured with the "context" source).
"""

from contextvars import ContextVar

# Current organization ID for the request (set by middleware).
current_org_id: ContextVar[str | None] = ContextVar("current_org_id", default=None)


def set_org_id(org_id: str | None) -> None:
    """Set the current organization ID for this context (e.g. request)."""
    current_org_id.set(org_id)


def get_org_id() -> str | None:
    """Return the current organization ID if set."""
    return current_org_id.get()
