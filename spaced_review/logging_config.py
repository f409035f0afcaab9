import logging

from rich.logging import RichHandler

from spaced_review.config import settings


def setup_logging(log_level: str = None) -> None:
    """Configure root logging once, with rich console output.

    Args:
        log_level: Logging level name; defaults to settings.log_level
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # SQL echo is noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
