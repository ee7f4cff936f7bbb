"""Database engine factory."""

from sqlalchemy import Engine, create_engine

from rbac_db.core.config import Settings, settings as default_settings


def build_engine(settings: Settings | None = None) -> Engine:
    """Create a synchronous engine for the configured DATABASE_URL."""
    settings = settings or default_settings
    options: dict = {"echo": settings.DEBUG}
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_recycle=1800)
    return create_engine(settings.DATABASE_URL, **options)
