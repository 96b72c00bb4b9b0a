from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine  # noqa: TC002

from enricher.adapters.sqlalchemy import Database, SqlAlchemyUnitOfWork, start_mappers
from enricher.adapters.sqlalchemy.migrations import upgrade_head

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def database(sqlite_engine: Engine) -> Iterator[Database]:
    database = Database(engine=sqlite_engine)
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture
def unit_of_work_factory(database: Database) -> Callable[[], SqlAlchemyUnitOfWork]:
    return database.unit_of_work


@pytest.fixture
def file_database(tmp_path: Path) -> Iterator[Database]:
    """File-backed database whose transactions take the write lock up front.

    Needed wherever several threads write concurrently.
    """

    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'enricher.db'}",
        connect_args={"timeout": 30, "check_same_thread": False},
        future=True,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection: object, _record: object) -> None:
        dbapi_connection.isolation_level = None  # type: ignore[attr-defined]

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection: object) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")  # type: ignore[attr-defined]

    start_mappers()
    upgrade_head(engine=engine)
    database = Database(engine=engine)
    try:
        yield database
    finally:
        database.dispose()
