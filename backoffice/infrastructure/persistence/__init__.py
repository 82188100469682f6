"""Persistence: SQLAlchemy engine, models, repositories and Alembic migrations."""
