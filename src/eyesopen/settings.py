"""Environment driven defaults for EyesOpen.

Values are read from ``EYESOPEN_*`` environment variables; the command line
loads a ``.env`` file into the environment first. This module holds no GUI
or I/O besides reading the environment.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigurationError
from .presets import DEFAULT_MAX_SIZE_DIFFERENCE, DEFAULT_MAX_TIME_SECONDS, MATCH_LEVELS

ENV_PREFIX = "EYESOPEN_"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    match_level: Optional[str] = None
    max_time_seconds: float = DEFAULT_MAX_TIME_SECONDS
    max_size_difference: int = DEFAULT_MAX_SIZE_DIFFERENCE
    log_level: str = "WARNING"

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


def _read(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from the environment (``os.environ`` by default)."""
    env = os.environ if environ is None else environ
    values = {}

    match_level = _read(env, "MATCH_LEVEL")
    if match_level is not None:
        if match_level.lower() not in MATCH_LEVELS:
            raise ConfigurationError(
                f"{ENV_PREFIX}MATCH_LEVEL must be one of {', '.join(sorted(MATCH_LEVELS))}, got {match_level!r}"
            )
        values["match_level"] = match_level.lower()

    max_time = _read(env, "MAX_TIME_SECONDS")
    if max_time is not None:
        try:
            values["max_time_seconds"] = float(max_time)
        except ValueError as exc:
            raise ConfigurationError(f"{ENV_PREFIX}MAX_TIME_SECONDS must be a number, got {max_time!r}") from exc

    max_size = _read(env, "MAX_SIZE_DIFFERENCE")
    if max_size is not None:
        try:
            values["max_size_difference"] = int(max_size)
        except ValueError as exc:
            raise ConfigurationError(
                f"{ENV_PREFIX}MAX_SIZE_DIFFERENCE must be an integer, got {max_size!r}"
            ) from exc

    log_level = _read(env, "LOG_LEVEL")
    if log_level is not None:
        level = log_level.upper()
        if level == "WARN":
            level = "WARNING"
        if level not in _LOG_LEVELS:
            raise ConfigurationError(f"{ENV_PREFIX}LOG_LEVEL {log_level!r} is not a logging level")
        values["log_level"] = level

    return Settings(**values)
