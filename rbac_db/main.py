"""
Storage factory.

Assembles an ItemsStorage from settings: configures logging, builds
the engine and, when asked, creates the two RBAC tables.  Production
schemas are normally managed by migrations, not create_all.
"""

import logging

from sqlalchemy import Engine

from rbac_db.core.config import Settings, settings as default_settings
from rbac_db.core.database import build_engine
from rbac_db.services.items_storage import ItemsStorage

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper(),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def create_items_storage(
    settings: Settings | None = None,
    engine: Engine | None = None,
    create_schema: bool = False,
) -> ItemsStorage:
    settings = settings or default_settings
    configure_logging(settings)

    engine = engine or build_engine(settings)
    storage = ItemsStorage(
        engine,
        items_table=settings.RBAC_ITEMS_TABLE,
        items_children_table=settings.RBAC_ITEMS_CHILDREN_TABLE,
        names_separator=settings.RBAC_NAMES_SEPARATOR,
    )

    if create_schema:
        storage.metadata.create_all(engine)
        logger.info(
            "Created tables %s, %s.",
            settings.RBAC_ITEMS_TABLE,
            settings.RBAC_ITEMS_CHILDREN_TABLE,
        )

    return storage
