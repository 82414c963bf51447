"""Create or upgrade the TrainHub schema.

Run with ``python -m trainhub.database.init_db``.
"""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

import trainhub.database.db as db_module
from trainhub.core.startup import bootstrap
from trainhub.database.models import Base

PROJECT_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)


def build_alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def init_db(run_migrations: bool = True) -> None:
    """Upgrade to the latest revision, then create anything still missing."""
    bootstrap()
    active_url = db_module.get_active_database_url()
    if run_migrations:
        command.upgrade(build_alembic_config(active_url), "head")
        logger.info(
            "database.migrations.applied",
            extra={"event": "database.migrations.applied", "database_url_scheme": active_url.split("://", 1)[0]},
        )

    Base.metadata.create_all(bind=db_module.get_engine())
    logger.info(
        "database.tables.created",
        extra={
            "event": "database.tables.created",
            "tables": sorted(Base.metadata.tables.keys()),
        },
    )


if __name__ == "__main__":
    init_db()
