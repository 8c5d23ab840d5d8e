# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for httpbuilder."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "HTTPBUILDER_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

# Loggers owned by the default transport stack; chatty at INFO.
TRANSPORT_LOGGERS = ("httpx", "httpcore")


def resolve_log_level(level: str | None = None) -> int:
    """Map a level name (or the environment default) to a logging level number."""
    name = (level or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def setup_logging(level: str | None = None) -> None:
    """Configure standard logging for CLI/library use.

    Transport loggers stay at WARNING unless DEBUG was requested, so request
    lines from httpx do not drown out dispatcher messages.
    """
    effective_level = resolve_log_level(level)
    logging.basicConfig(
        level=effective_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    transport_level = effective_level if effective_level <= logging.DEBUG else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)


__all__ = ["resolve_log_level", "setup_logging"]
