"""Logging configuration for the ``statement_budget`` package.

- ``configure_logging(...)``: attach one ``StreamHandler`` to the package
  logger (``"statement_budget"``). Called once by the CLI at startup.
- ``get_logger(name)``: acquire a module logger; until the package is
  configured its root carries a ``NullHandler`` so library use stays silent.

Library modules never attach handlers. Log lines are short ``event key=value``
records, e.g. ``extract:file_done filename=a.csv rows=12 dropped=1``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "statement_budget"
_LEVEL_ENV = "SB_LOG_LEVEL"
# The OpenAI SDK logs every HTTP request at INFO through these loggers; one
# categorization call per transaction makes that noise dominate the output.
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai")
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _level_from_name(value: str) -> int | None:
    name = value.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    return numeric if isinstance(numeric, int) else None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or ``SB_LOG_LEVEL`` when ``None``) into a numeric level.

    Unknown names resolve to ``INFO``.
    """

    if isinstance(level, int):
        return level
    raw = level if level is not None else os.getenv(_LEVEL_ENV)
    if not raw:
        return logging.INFO
    return _level_from_name(raw) or logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Configure the package logger exactly once per process.

    ``stream`` defaults to ``sys.stderr`` looked up at call time, so the CLI's
    stdout stays reserved for results.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = resolve_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    if resolved > logging.DEBUG:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, keeping the package silent until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
