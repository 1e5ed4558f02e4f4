"""
Logging - stdlib logging configuration and the tagged LoggerService.

Framework modules log through ``logging.getLogger("trellis.<area>")``.
Application code and the error pipeline use :class:`LoggerService`, a
narrow ``{debug, info, warn, error}(tag, message)`` adapter that renders
``"[tag] message"`` records on the same logger tree.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .config import LoggerConfig


ROOT_LOGGER = "trellis"

_FORMATS = {
    "simple": "%(asctime)s %(levelname)s %(message)s",
    "detailed": "%(asctime)s %(levelname)s %(name)s [%(process)d] %(message)s",
}


class LoggerService:
    """
    Tagged logger used by controllers, services and the error pipeline.

    Example:
        logger = LoggerService()
        logger.warn("ErrorHandler", "404 Not Found: GET /missing")
    """

    __slots__ = ("_logger",)

    def __init__(self, name: str = ROOT_LOGGER, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, tag: str, message: str) -> None:
        self._logger.debug(self._render(tag, message))

    def info(self, tag: str, message: str) -> None:
        self._logger.info(self._render(tag, message))

    def warn(self, tag: str, message: str) -> None:
        self._logger.warning(self._render(tag, message))

    warning = warn

    def error(self, tag: str, message: str, *, exc_info=None) -> None:
        self._logger.error(self._render(tag, message), exc_info=exc_info)

    @staticmethod
    def _render(tag: str, message: str) -> str:
        tag = tag.strip("[]")
        return f"[{tag}] {message}"


def configure_logging(config: "LoggerConfig") -> logging.Logger:
    """
    Install handlers on the ``trellis`` logger from a LoggerConfig.

    Idempotent: handlers installed by a previous call are replaced.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(config.level)

    for handler in list(logger.handlers):
        if getattr(handler, "_trellis_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(_FORMATS.get(config.format, _FORMATS["simple"]))

    if "console" in config.transports:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        console._trellis_handler = True
        logger.addHandler(console)

    if "file" in config.transports:
        path = Path(config.filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=config.max_size,
            backupCount=config.max_files,
            encoding="utf-8",
        )
        rotating.setFormatter(formatter)
        rotating._trellis_handler = True
        logger.addHandler(rotating)

    return logger
