"""Apply Alembic migrations up to head against settings.DATABASE_URL."""
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from app.core.config import settings
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)

ROOT = Path(__file__).parent


def upgrade_head() -> None:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    logger.info("Running migrations", extra={"database_url": settings.DATABASE_URL.split("@")[-1]})
    command.upgrade(cfg, "head")
    logger.info("Database migration completed")


if __name__ == "__main__":
    configure_logging(settings.LOG_LEVEL)
    upgrade_head()
