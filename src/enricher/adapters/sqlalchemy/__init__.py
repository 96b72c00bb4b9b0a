"""SQLAlchemy adapter package."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyClaimRepository,
    SqlAlchemyFrontierRepository,
    SqlAlchemyGraphRepository,
    SqlAlchemySourceDocumentRepository,
    insert_ignoring_conflicts,
)
from .unit_of_work import Database, SqlAlchemyUnitOfWork, StartupError, startup

__all__ = [
    "Database",
    "SqlAlchemyClaimRepository",
    "SqlAlchemyFrontierRepository",
    "SqlAlchemyGraphRepository",
    "SqlAlchemySourceDocumentRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "create_all_tables",
    "insert_ignoring_conflicts",
    "mapper_registry",
    "start_mappers",
    "startup",
]
