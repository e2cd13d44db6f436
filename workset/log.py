"""Logging setup for the ``workset`` logger hierarchy.

Modules log through ``logging.getLogger(__name__)``. The CLI calls
``configure_logging`` once; repeated calls replace only the handler this
module installed, so embedding applications keep their own handlers.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import TextIO

LOGGER_NAME = "workset"
LOG_LEVEL_ENV = "WORKSET_LOG"

_HANDLER_TAG_ATTR = "_workset_handler"

LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(frozen=True)
class LoggingConfig:
    """Immutable logging settings resolved from CLI flags, env, and user config."""

    level: str = "WARNING"
    fmt: str = "%(levelname)s | %(message)s"
    debug_fmt: str = "%(levelname)s | %(name)s | %(message)s"


def parse_level(value: str | None, default: int = logging.WARNING) -> int:
    """Map a level name to its numeric value, ignoring unknown names."""
    if not value:
        return default
    return LEVELS.get(value.strip().upper(), default)


def normalize_level_name(value: object) -> str | None:
    """Return the canonical level name for ``value``, or ``None`` if unknown."""
    if not isinstance(value, str):
        return None
    name = value.strip().upper()
    if name not in LEVELS:
        return None
    return "WARNING" if name == "WARN" else name


def level_for_verbosity(verbosity: int, base: str | None = None) -> str:
    """Return the level name for ``-v`` repetitions on top of ``base``.

    An explicit ``WORKSET_LOG`` environment value takes precedence over
    ``base`` but not over ``-v`` flags.
    """
    if verbosity >= 2:
        return "DEBUG"
    if verbosity == 1:
        return "INFO"
    env_value = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if env_value in LEVELS:
        return env_value
    if base and base.strip().upper() in LEVELS:
        return base.strip().upper()
    return "WARNING"


def configure_logging(cfg: LoggingConfig, stream: TextIO | None = None) -> logging.Logger:
    """Install (or replace) the tagged stderr handler on the ``workset`` logger."""
    logger = logging.getLogger(LOGGER_NAME)
    level = parse_level(cfg.level)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG_ATTR, False):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(cfg.debug_fmt if level <= logging.DEBUG else cfg.fmt))
    setattr(handler, _HANDLER_TAG_ATTR, True)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
