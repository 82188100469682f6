"""Infrastructure layer: persistence, cache, security and analytics adapters."""
