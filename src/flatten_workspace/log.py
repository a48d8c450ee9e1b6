"""Logging utilities for flatten-workspace."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from colorama import Fore, Style, just_fix_windows_console

_LOGGER_NAME = "flatten_workspace"
_PREFIX = "[flatten-workspace]"

# Set ``extra={"success": True}`` on an INFO record to print it in green.
_LEVEL_COLORS = {
    logging.DEBUG: Style.DIM,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}


class ColorFormatter(logging.Formatter):
    def __init__(self, use_color: bool = True) -> None:
        super().__init__(f"{_PREFIX} %(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        if not self.use_color:
            return msg
        if getattr(record, "success", False):
            color = Fore.GREEN
        else:
            color = _LEVEL_COLORS.get(record.levelno, "")
        if not color:
            return msg
        return f"{color}{msg}{Style.RESET_ALL}"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the flatten_workspace hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, use_color: Optional[bool] = None
) -> logging.Logger:
    """Send flatten_workspace records to stderr, colored when it is a terminal."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if use_color is None:
        use_color = sys.stderr.isatty()
    if use_color:
        just_fix_windows_console()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColorFormatter(use_color=use_color))
    logger.addHandler(handler)
    return logger


__all__ = ["ColorFormatter", "configure_logging", "get_logger"]
