"""
Shared helpers.
"""
import logging
import sys

from taskhub.core import config

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("taskhub")
    root.addHandler(handler)
    root.setLevel(config.LOG_LEVEL)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger under the ``taskhub`` hierarchy.

    Usage:
        log = get_logger(__name__)
        log.info("Created team %s", team.slug)
    """
    _configure_root()
    if not name.startswith("taskhub"):
        name = f"taskhub.{name}"
    return logging.getLogger(name)
