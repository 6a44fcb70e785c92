"""Centralized logging configuration for the ``household_finance`` package.

Library modules only call ``get_logger("household_finance.<module>")``.
Entry points (the Streamlit dashboard) call ``configure_logging`` once at
startup; until then the package logger carries a ``NullHandler`` so that
degraded-record warnings stay silent in library and test contexts.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "household_finance"
_LEVEL_ENV_VAR = "HOUSEHOLD_FINANCE_LOG_LEVEL"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv(_LEVEL_ENV_VAR)
    if env_val and env_val != level:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach a single ``StreamHandler`` to the package root logger.

    Parameters
    ----------
    level:
        Logging level as ``int`` or level name.  ``None`` falls back to the
        ``HOUSEHOLD_FINANCE_LOG_LEVEL`` environment variable, then ``INFO``.
    fmt:
        Optional format string.
    stream:
        Output stream for the handler (defaults to ``sys.stderr``).
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s"))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger, making sure the package root has at least a ``NullHandler``."""
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
