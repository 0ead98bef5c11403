"""Logging setup for the trainer.

Modules log through ``logging.getLogger(__name__)``; nothing is emitted until
``setup_logging()`` installs a handler (the ``python -m`` entry point does).
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "DUAL_NBACK_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"

_configured = False


def resolve_level(name: str | None) -> int:
    if not name:
        return logging.WARNING
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(level: str | None = None, *, force_reconfigure: bool = False) -> logging.Logger:
    """Attach a console handler to the package logger.

    ``level`` defaults to ``$DUAL_NBACK_LOG_LEVEL``, then WARNING.
    """

    global _configured

    pkg_logger = logging.getLogger("dual_nback_trainer")
    if _configured and not force_reconfigure:
        return pkg_logger

    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(resolve_level(level if level is not None else os.environ.get(LOG_LEVEL_ENV)))
    pkg_logger.propagate = False

    _configured = True
    return pkg_logger
