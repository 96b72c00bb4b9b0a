"""Typed readers for ``ENRICHER_*`` and other environment variables.

Blank values count as unset everywhere. Unparsable values raise
``ConfigurationError`` naming the offending variable.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip() or None


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return every named variable, or raise listing all that are missing."""

    values = {name: env_str(name) for name in names}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise MissingConfigurationError(missing)
    return {name: value for name, value in values.items() if value is not None}


def require_env_var(name: str) -> str:
    return require_env_vars([name])[name]


def _parsed[T](name: str, default: T, parse: Callable[[str], T], expected: str) -> T:
    raw = env_str(name)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be {expected}, got {raw!r}", variable=name
        ) from exc


def env_float(name: str, default: float) -> float:
    return _parsed(name, default, float, "a number")


def env_int(name: str, default: int) -> int:
    return _parsed(name, default, int, "an integer")


def _flag(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(raw)


def env_flag(name: str, default: bool = False) -> bool:
    return _parsed(name, default, _flag, "a boolean flag")


def env_list(name: str) -> tuple[str, ...]:
    """Split a comma separated variable into trimmed, non-empty items."""

    raw = env_str(name)
    if raw is None:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())
