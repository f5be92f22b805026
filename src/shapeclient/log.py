# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Logging for shapeclient.

Every module logs under the ``shapeclient`` logger hierarchy. Field mismatches
and dropped list elements are DEBUG, transport failures and unrecognized
payloads WARNING, failing callbacks and mapping errors ERROR.
"""

from __future__ import annotations

import logging
import os

PACKAGE_LOGGER = "shapeclient"
LOG_LEVEL_ENV = "SHAPECLIENT_LOG_LEVEL"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def resolve_log_level(level: str | int | None = None) -> int:
    """Numeric level for ``level``, else ``SHAPECLIENT_LOG_LEVEL``; unknown names mean WARNING."""
    if isinstance(level, int):
        return level
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """Install a root handler if none exists and set the ``shapeclient`` logger level."""
    effective_level = resolve_log_level(level)
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(effective_level)
    return logger


__all__ = ["LOG_FORMAT", "PACKAGE_LOGGER", "resolve_log_level", "setup_logging"]
