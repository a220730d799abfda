"""
PastSelf - Logging
===================
Logger factory shared by every PastSelf module.

All loggers hang off a single ``pastself`` parent that owns the one
stdout handler, so records print once whatever module emits them.
Names from outside the package (``__main__`` when a script runs
directly) are re-rooted under it.

Verbosity follows ``settings.ENV``:
  • ``"dev"``  → DEBUG for PastSelf, WARNING for the HTTP / driver clients
  • ``"prod"`` → WARNING everywhere

Usage:
    from pastself.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("[RAG] Something happened")
"""

import logging
import sys

from pastself.config.settings import settings

ROOT_LOGGER_NAME = "pastself"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}
_DEFAULT_LEVEL = _ENV_LEVEL_MAP.get(settings.ENV, logging.INFO)

# Client libraries that log every request at INFO / DEBUG
_CHATTY_LIBRARIES = ("httpx", "httpcore", "pymongo", "google_genai", "tenacity")


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(_DEFAULT_LEVEL)
    root.propagate = False

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(max(_DEFAULT_LEVEL, logging.WARNING))
    return root


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return the PastSelf logger for *name*.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit level for this logger only.  If *None* it
               inherits the level derived from ``settings.ENV``.
    """
    root = _configure_root()
    if name == ROOT_LOGGER_NAME:
        logger = root
    elif name.startswith(ROOT_LOGGER_NAME + "."):
        logger = logging.getLogger(name)
    else:
        logger = root.getChild(name)

    if level is not None:
        logger.setLevel(level)
    return logger
