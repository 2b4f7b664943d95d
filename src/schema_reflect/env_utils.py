"""Readers for ``SCHEMA_REFLECT_*`` setting overrides."""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

ENV_PREFIX = "SCHEMA_REFLECT_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def env_name(key: str) -> str:
    """Return the variable overriding setting ``key``."""
    return f"{ENV_PREFIX}{key.upper()}"


def env_text(key: str) -> str | None:
    """Return the override of a text setting.

    Returns:
    -------
    str | None
        Stripped value, or ``None`` when unset or blank.
    """
    value = os.environ.get(env_name(key), "").strip()
    return value or None


def env_list(key: str) -> list[str]:
    """Return the comma-separated items of a list setting, blanks dropped."""
    value = env_text(key)
    if value is None:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def env_flag(key: str) -> bool | None:
    """Return the override of a boolean setting.

    Values outside the known true/false spellings are logged and ignored.

    Returns:
    -------
    bool | None
        Parsed flag, or ``None`` when unset or invalid.
    """
    name = env_name(key)
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning("Ignoring invalid boolean for %s: %r", name, raw)
    return None


__all__ = ["ENV_PREFIX", "env_flag", "env_list", "env_name", "env_text"]
