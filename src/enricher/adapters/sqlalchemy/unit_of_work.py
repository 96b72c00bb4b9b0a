"""SQLAlchemy-backed database component and unit of work."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from enricher.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from enricher.adapters.sqlalchemy.migrations import upgrade_head
from enricher.adapters.sqlalchemy.repositories import (
    SqlAlchemyClaimRepository,
    SqlAlchemyFrontierRepository,
    SqlAlchemyGraphRepository,
    SqlAlchemySourceDocumentRepository,
)
from enricher.config.storage import get_database_config
from enricher.domain.ports.unit_of_work import EnrichmentRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when the database component is used outside its lifetime."""


@dataclass(slots=True)
class Database:
    """Owns the engine and session factory; construct via ``startup`` and ``dispose`` it."""

    engine: Engine
    _session_factory: sessionmaker[Session] | None = field(default=None, repr=False)
    _disposed: bool = field(default=False, repr=False)

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._disposed:
            raise StartupError("Database has been disposed")
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def unit_of_work(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self)

    def dispose(self) -> None:
        if not self._disposed:
            self.engine.dispose()
        self._disposed = True
        self._session_factory = None


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    migrate: bool = True,
) -> Database:
    """Initialise mappers and schema and return a ready ``Database``.

    ``migrate=False`` creates the tables straight from metadata instead of
    running Alembic.
    """

    if engine is None:
        config = get_database_config(uri=database_uri)
        engine = create_engine(config.uri, echo=config.echo, future=True)
    start_mappers()
    if migrate:
        upgrade_head(engine=engine)
    else:
        create_all_tables(engine)
    return Database(engine=engine)


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self, database: Database) -> None:
        self.session_factory: sessionmaker[Session] = database.session_factory
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None or self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[EnrichmentRepositories]):
    """Unit of work over frontier, source document, claim and graph storage."""

    def _build_repositories(self, session: Session) -> EnrichmentRepositories:
        return EnrichmentRepositories(
            frontier=SqlAlchemyFrontierRepository(session),
            source_documents=SqlAlchemySourceDocumentRepository(session),
            claims=SqlAlchemyClaimRepository(session),
            graph=SqlAlchemyGraphRepository(session),
        )
