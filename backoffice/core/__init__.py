"""Core: config, tenant context and application bootstrap.

Single place for settings and request-scoped tenant state.
"""

from backoffice.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
