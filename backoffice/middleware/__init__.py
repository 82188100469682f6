"""HTTP middleware: request id, organization context, API usage metering."""

from backoffice.middleware.api_usage import ApiUsageMiddleware
from backoffice.middleware.org_context import OrgContextMiddleware
from backoffice.middleware.request_id import RequestIDMiddleware

__all__ = ["ApiUsageMiddleware", "OrgContextMiddleware", "RequestIDMiddleware"]
