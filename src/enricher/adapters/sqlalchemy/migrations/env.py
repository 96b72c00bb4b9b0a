"""Alembic entry point for the enrichment schema.

``upgrade_head`` either hands over an open connection through
``config.attributes["connection"]`` or sets ``sqlalchemy.url``; the URL
otherwise resolves the same way the application's engine does.
"""

from __future__ import annotations

from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

from enricher.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from enricher.config import get_database_config

config = context.config

start_mappers()

_OPTIONS: dict[str, Any] = {
    "target_metadata": mapper_registry.metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _migrate(**configure: Any) -> None:
    context.configure(**configure, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def main() -> None:
    connection = config.attributes.get("connection")
    if connection is not None:
        _migrate(connection=connection)
        return

    url = get_database_config(uri=config.get_main_option("sqlalchemy.url")).uri
    if context.is_offline_mode():
        _migrate(url=url, literal_binds=True)
        return

    engine = create_engine(url, poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as connection:
            _migrate(connection=connection)
    finally:
        engine.dispose()


main()
