# backend/backoffice/core/logging_config.py
import logging

from backoffice.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Root logger setup shared by the API factory and the CLI.
    LOG_LEVEL from settings unless an explicit level is given.
    """
    name = (level or settings.LOG_LEVEL or "INFO").strip().upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)
    # SQL echo stays off unless someone asks for DEBUG explicitly.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
