"""Environment flag helpers."""

from __future__ import annotations

import os
from collections.abc import Mapping

DEBUG_ENV_VAR = "MULTIPART_BUILDER_DEBUG"

_ENABLED = frozenset({"1", "true", "yes", "on"})


def env_flag_enabled(value: str | bytes | None) -> bool:
    """Return ``True`` when *value* spells an enabled flag; anything else is off."""
    if value is None:
        return False
    if isinstance(value, bytes):
        value = value.decode(errors="ignore")
    return value.strip().lower() in _ENABLED


def debug_logging_requested(environ: Mapping[str, str] | None = None) -> bool:
    """Return ``True`` when the debug logging flag is set in *environ*."""
    env = os.environ if environ is None else environ
    return env_flag_enabled(env.get(DEBUG_ENV_VAR))


__all__ = ["DEBUG_ENV_VAR", "debug_logging_requested", "env_flag_enabled"]
