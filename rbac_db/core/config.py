"""
Storage configuration.

All settings are loaded from environment variables (or a .env file).
Pydantic-settings validates and types every value at startup, so
misconfiguration fails fast instead of at runtime.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ──────────────────────────────────────────────────────────
    APP_NAME: str = "RBAC DB"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Database ─────────────────────────────────────────────────────
    # Synchronous driver only; the storage never runs on an event loop.
    DATABASE_URL: str = "sqlite:///./rbac.db"

    # ── RBAC tables ──────────────────────────────────────────────────
    RBAC_ITEMS_TABLE: str = "rbac_item"
    RBAC_ITEMS_CHILDREN_TABLE: str = "rbac_item_child"
    # Validated by ItemsStorage itself (exactly one character).
    RBAC_NAMES_SEPARATOR: str = "/"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
