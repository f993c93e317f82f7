"""Logging setup driven by ``DeliberateSettings.log_level`` / ``log_format``.

Library code only ever calls ``logging.getLogger(__name__)``; this module
decides how the ``deliberate`` logger renders. Text goes through
``colorlog``, JSON lines through ``structlog``'s ``ProcessorFormatter`` so
records from the standard library get the same processor chain.
"""

from __future__ import annotations

import logging
from pathlib import Path

import structlog
from colorlog import ColoredFormatter

_HANDLER_NAME = "deliberate"

TEXT_FORMAT = "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "light_blue",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter emitting one JSON object per record.

    Keys: ``timestamp`` (ISO, UTC), ``level``, ``logger``, ``message`` and,
    when the record carries one, ``exception``.
    """
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def text_formatter(color: bool = True) -> ColoredFormatter:
    return ColoredFormatter(
        TEXT_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        reset=True,
        log_colors=LOG_COLORS,
        no_color=not color,
    )


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Attach a single handler to the ``deliberate`` logger.

    Arguments left as ``None`` fall back to the global settings. Calling this
    again replaces the handler instead of stacking a second one.

    Args:
        level: Logging level name (``"DEBUG"``, ``"INFO"`` ...).
        fmt: ``"text"`` or ``"json"``.
        log_file: Optional file to log to instead of stderr; text written
            there is uncoloured.

    Returns:
        The configured package logger.
    """
    from deliberate.config.settings import get_settings

    settings = get_settings()
    level = level or settings.log_level
    fmt = fmt or settings.log_format
    log_file = log_file or settings.log_file

    logger = logging.getLogger("deliberate")
    logger.setLevel(level.upper())

    for existing in list(logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logger.removeHandler(existing)
            existing.close()

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)

    if fmt == "json":
        handler.setFormatter(json_formatter())
    else:
        handler.setFormatter(text_formatter(color=not log_file))

    logger.addHandler(handler)
    return logger
