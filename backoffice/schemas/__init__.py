"""Request/response schemas (Pydantic) for the HTTP API."""
