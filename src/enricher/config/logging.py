"""Root logger setup for the CLI."""

from __future__ import annotations

import logging

from .env import env_str
from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_log_level(default: int = logging.INFO) -> int:
    """Level named by ``ENRICHER_LOG_LEVEL`` (e.g. ``debug``), else ``default``."""

    raw = env_str("ENRICHER_LOG_LEVEL")
    if raw is None:
        return default
    level = logging.getLevelNamesMapping().get(raw.upper())
    if level is None:
        raise ConfigurationError(
            f"ENRICHER_LOG_LEVEL is not a logging level: {raw!r}", variable="ENRICHER_LOG_LEVEL"
        )
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Configure the root logger once with a terse format.

    Without an explicit ``level`` the environment decides; ``force=True``
    replaces handlers installed earlier.
    """

    logging.basicConfig(
        level=resolve_log_level() if level is None else level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
