# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Logging helpers for SMB Pulse.

Every module logs through ``get_logger(__name__)`` into the ``smb_pulse``
logger hierarchy. The package itself only installs a NullHandler, so a
host application that does not care about SMB Pulse logs sees nothing.

``configure_logging()`` is for the host (dashboard backend, notebook,
script) or for ``compute_dashboard()`` when the configuration sets a
``[logging] level``. Calling it again updates the level and format of the
same handler instead of stacking a new one.
"""

import logging
import os
import sys
from typing import IO, Optional, Union

PACKAGE_LOGGER = "smb_pulse"
LOG_LEVEL_ENV = "SMB_PULSE_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_HANDLER_NAME = "smb_pulse.console"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def resolve_level(level: Union[int, str, None] = None) -> int:
    """
    Turn a level given as int, name or digit string into a logging level.

    When ``level`` is None, the ``SMB_PULSE_LOG_LEVEL`` environment variable
    is read. Unknown names fall back to INFO.
    """
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level

    name = str(level).strip().upper()
    if name.isdigit():
        return int(name)
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Logger for an SMB Pulse module, always inside the package hierarchy."""
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(
    level: Union[int, str, None] = None,
    *,
    fmt: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """
    Send SMB Pulse logs to a stream.

    Parameters
    ----------
    level :
        Level as int or name (e.g. ``"DEBUG"``). Defaults to the
        ``SMB_PULSE_LOG_LEVEL`` environment variable, else INFO.
    fmt :
        Record format, DEFAULT_FORMAT when omitted.
    stream :
        Output stream, ``sys.stderr`` when omitted. Only used when the
        handler is created.

    Returns
    -------
    logging.Handler
        The package console handler.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    numeric_level = resolve_level(level)

    # 1) Reuse the console handler installed by a previous call
    handler = next((h for h in logger.handlers if h.name == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.set_name(_HANDLER_NAME)
        logger.addHandler(handler)

    # 2) Level and format
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    logger.setLevel(numeric_level)

    # Records stop at the package logger so the host root handler does not
    # print them twice.
    logger.propagate = False
    return handler
