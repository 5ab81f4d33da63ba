"""Centralized logging utilities for envscope.

Every entry point asks for the ``envscope`` logger through :func:`get_logger`
so handlers are configured exactly once. Library modules simply use
``logging.getLogger(__name__)`` and propagate into it.

The console handler always writes to stderr: stdout of ``envscope export`` is
evaluated by the user's shell.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import pathlib
import sys
from typing import Optional

# Cache created loggers so repeated calls don't duplicate handlers
_LOGGER_CACHE = {}


def get_logger(
    name: str = "envscope",
    log_dir: Optional[str] = None,
    *,
    console_level: str = "WARNING",
    console: bool = True,
) -> logging.Logger:
    """Return a configured :class:`logging.Logger`.

    Parameters
    ----------
    name:
        Logger name (also used in log filename: ``{name}.log``).
    log_dir:
        Directory where log files should be written. Created if missing.
    console_level:
        Level name for the stderr handler.
    console:
        Attach the stderr handler at all. The interactive session turns this
        off so log lines never land on the rendered screen.

    Behavior
    --------
    * INFO level to the file.
    * Rotating file handler (5MB x5 backups) + console handler.
    * Reuses cached logger on subsequent calls.
    """
    if name in _LOGGER_CACHE:
        return _LOGGER_CACHE[name]

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Guard against double-adding handlers if the interpreter reloads modules
    if logger.handlers:
        return logger

    if log_dir is None:
        log_dir = "logs"
    pathlib.Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_path = os.path.join(log_dir, f"{name}.log")

    # Rotating file --------------------------------------------------------
    fh = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8"
    )
    fh.setLevel(logging.INFO)
    fh.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    )
    logger.addHandler(fh)

    # Console --------------------------------------------------------------
    if console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(getattr(logging, console_level.upper(), logging.WARNING))
        ch.setFormatter(logging.Formatter("envscope: %(message)s"))
        logger.addHandler(ch)

    _LOGGER_CACHE[name] = logger
    return logger


def reset_logger(name: str = "envscope") -> None:
    """Close and drop handlers for ``name`` (tests and repeated CLI runs)."""
    logger = _LOGGER_CACHE.pop(name, None) or logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
