import logging
import sys

from config import settings


def configure_logging(level: str | None = None) -> None:
    """
    Configure logging for the whole app.
    Call once at API startup (and from scripts before touching the database).
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if not settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

