"""
Helpdesk - Logging
===================
One stdout handler on the ``helpdesk`` parent logger; every module logger
(``helpdesk.src.core.loader``, ``helpdesk.src.api.routes``, ...) is a
child that propagates to it, so handlers are never duplicated and a
single ``setLevel`` call adjusts the whole service.

Verbosity:
  • ``LOG_LEVEL`` when set (``DEBUG``, ``INFO``, ...)
  • otherwise ``ENV``: ``"dev"`` → DEBUG, ``"prod"`` → WARNING

Usage:
    from helpdesk.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Indexed %d passage(s)", n)
"""

import logging
import sys

from helpdesk.config.settings import settings

ROOT_LOGGER_NAME = "helpdesk"

_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NOISY_LIBRARIES = ("httpx", "httpcore", "urllib3", "uvicorn.access", "google_genai", "pypdf")


def _default_level() -> int:
    if settings.LOG_LEVEL:
        return logging.getLevelName(settings.LOG_LEVEL)
    return _ENV_LEVEL_MAP.get(settings.ENV, logging.INFO)


_service_handler: logging.Handler | None = None


def _root_logger() -> logging.Logger:
    global _service_handler
    root = logging.getLogger(ROOT_LOGGER_NAME)
    # other handlers (test runners, embedding apps) may already be attached
    if _service_handler is None:
        _service_handler = logging.StreamHandler(sys.stdout)
        _service_handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(_service_handler)
        root.setLevel(_default_level())
        # the service owns its output; keep records off the interpreter root
        root.propagate = False
    return root


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return a logger under the ``helpdesk`` hierarchy.

    Args:
        name:  Typically ``__name__`` of the calling module.  Names outside
               the hierarchy are nested under it.
        level: Explicit level for this logger only.  If *None*, the level
               is inherited from the ``helpdesk`` parent.
    """
    _root_logger()
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def quiet_third_party(level: int = logging.WARNING) -> None:
    """Lower the noise of HTTP client and server libraries."""
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(level)
