import logging
import os

from rich.logging import RichHandler

_DEFAULT_NAME = "kalakriti"


class CenteredFormatter(logging.Formatter):
    """Pads logger names to the widest one seen so far so messages line up."""

    name_width = 12

    def format(self, record):
        CenteredFormatter.name_width = max(CenteredFormatter.name_width, len(record.name))
        name = record.name
        record.name = name.center(CenteredFormatter.name_width)
        try:
            return super().format(record)
        finally:
            record.name = name


def _level() -> int:
    return logging.DEBUG if os.getenv("DEBUG") else logging.INFO


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger that writes through rich.

    Handlers are attached once per name, later calls reuse them.
    """
    logger = logging.getLogger(name or _DEFAULT_NAME)
    level = _level()
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
        handler.setLevel(level)
        logger.addHandler(handler)
        logger.propagate = False

    return logger
