"""Logging for the ``chronosnap_reports`` package.

Library modules only ever call ``get_logger(__name__)``. Output is switched on
by an entrypoint (the CLI callback) through ``configure_logging``, which owns
exactly one ``StreamHandler`` on the ``chronosnap_reports`` logger.

Calling ``configure_logging`` again replaces that handler instead of adding a
second one, so a process that runs several commands (tests, notebooks) always
logs to the current stream at the most recently requested level.

The level comes from the ``level`` argument, else ``CHRONOSNAP_LOG_LEVEL``,
else ``INFO``. Unrecognized names fall back to ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "chronosnap_reports"
LOG_LEVEL_ENV = "CHRONOSNAP_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# Marks the handler installed by configure_logging.
_HANDLER_ATTR = "_chronosnap_handler"


def resolve_level(level: int | str | None = None) -> int:
    """Translate ``level`` (or the environment) into a numeric logging level."""

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV)
    if isinstance(level, int):
        return level
    if not level or not level.strip():
        return logging.INFO
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def _owned_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, _HANDLER_ATTR, False)]


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str = DEFAULT_FORMAT,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Install (or replace) the package's stream handler and return its logger.

    Parameters
    ----------
    level:
        Level as ``int`` or name (``"DEBUG"``, ``"warning"``). ``None`` reads
        ``CHRONOSNAP_LOG_LEVEL``.
    fmt:
        ``logging.Formatter`` format string.
    stream:
        Destination; ``sys.stderr`` as it is at call time when omitted.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in _owned_handlers(logger) + [
        h for h in logger.handlers if isinstance(h, logging.NullHandler)
    ]:
        logger.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    setattr(handler, _HANDLER_ATTR, True)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt))

    logger.addHandler(handler)
    logger.setLevel(resolved)
    # Records stop here; the root logger would print them twice.
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``; silent until ``configure_logging`` runs."""

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
