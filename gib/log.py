"""Logging setup for the gib logger namespace."""

import logging

from rich.logging import RichHandler

_configured = False


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a rich console handler to the ``gib`` logger. Idempotent; later calls only change the level."""
    global _configured
    logger = logging.getLogger("gib")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if _configured:
        return logger

    handler = RichHandler(rich_tracebacks=True, show_path=False, log_time_format="%Y-%m-%d %H:%M:%S")
    handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True
    return logger
