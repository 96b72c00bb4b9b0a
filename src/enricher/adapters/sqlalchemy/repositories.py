"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from functools import wraps
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, ProgrammingError

from enricher.adapters.sqlalchemy.mappings import (
    alias_table,
    claim_table,
    edge_table,
    entity_table,
    frontier_table,
    graph_evidence_table,
    source_document_table,
)
from enricher.domain.errors import GraphUnavailableError
from enricher.domain.model import (
    Alias,
    Claim,
    DocumentStatus,
    EdgeKind,
    EntityKind,
    FrontierTask,
    GraphEntity,
    SourceDocument,
    TaskStatus,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from uuid import UUID

    from sqlalchemy import Row, Table
    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session

    from enricher.domain.model import Edge, GraphEvidence

_MISSING_SCHEMA_MARKERS = ("no such table", "does not exist", "undefinedtable")


def _rowcount(result: Any) -> int:
    return cast("CursorResult[Any]", result).rowcount


def insert_ignoring_conflicts(session: Session, table: Table, values: Mapping[str, Any]) -> bool:
    """Insert a row unless it violates a uniqueness constraint; True if it was written.

    Uses the dialect's native ``ON CONFLICT DO NOTHING`` where there is one and
    a SAVEPOINT-guarded insert elsewhere.
    """

    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite_insert(table).values(**values).on_conflict_do_nothing()
    elif dialect == "postgresql":
        stmt = postgresql_insert(table).values(**values).on_conflict_do_nothing()
    else:
        try:
            with session.begin_nested():
                session.execute(insert(table).values(**values))
        except IntegrityError:
            return False
        return True
    return _rowcount(session.execute(stmt)) == 1


def _column_values(record: object, table: Table) -> dict[str, Any]:
    return {column.key: getattr(record, column.key) for column in table.columns}


def _is_missing_schema(error: DBAPIError) -> bool:
    message = str(error.orig).lower()
    return any(marker in message for marker in _MISSING_SCHEMA_MARKERS)


def _graph_storage[**P, T](method: Callable[P, T]) -> Callable[P, T]:
    """Report an uninitialised graph schema as ``GraphUnavailableError``."""

    @wraps(method)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return method(*args, **kwargs)
        except (OperationalError, ProgrammingError) as exc:
            if _is_missing_schema(exc):
                raise GraphUnavailableError(str(exc.orig)) from exc
            raise

    return wrapper


class SqlAlchemyFrontierRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def insert(self, task: FrontierTask) -> FrontierTask | None:
        values = _column_values(task, frontier_table)
        values.pop("id")
        if not insert_ignoring_conflicts(self.session, frontier_table, values):
            return None
        stmt = select(frontier_table).where(
            frontier_table.c.job_id == task.job_id,
            frontier_table.c.kind == task.kind,
            frontier_table.c.value == task.value,
        )
        return _task_from_row(self.session.execute(stmt).one())

    def claim(self, job_id: str, *, limit: int) -> list[FrontierTask]:
        candidates = (
            select(frontier_table.c.id)
            .where(frontier_table.c.job_id == job_id)
            .where(frontier_table.c.status == TaskStatus.PENDING)
            .order_by(frontier_table.c.priority.desc(), frontier_table.c.id.asc())
            .limit(limit)
        )
        if self.session.get_bind().dialect.name == "postgresql":
            candidates = candidates.with_for_update(skip_locked=True)
        stmt = (
            update(frontier_table)
            .where(frontier_table.c.id.in_(candidates))
            .where(frontier_table.c.status == TaskStatus.PENDING)
            .values(status=TaskStatus.PROCESSING, updated_at=datetime.now(UTC))
            .returning(*frontier_table.c)
        )
        tasks = [_task_from_row(row) for row in self.session.execute(stmt).all()]
        tasks.sort(key=lambda task: (-task.priority, task.id or 0))
        return tasks

    def finish(self, task_id: int, status: TaskStatus) -> bool:
        stmt = (
            update(frontier_table)
            .where(frontier_table.c.id == task_id)
            .where(frontier_table.c.status == TaskStatus.PROCESSING)
            .values(status=status, updated_at=datetime.now(UTC))
        )
        return _rowcount(self.session.execute(stmt)) == 1

    def get(self, task_id: int) -> FrontierTask | None:
        row = self.session.execute(
            select(frontier_table).where(frontier_table.c.id == task_id)
        ).one_or_none()
        return _task_from_row(row) if row is not None else None

    def count_by_status(self, job_id: str) -> dict[TaskStatus, int]:
        stmt = (
            select(frontier_table.c.status, func.count())
            .where(frontier_table.c.job_id == job_id)
            .group_by(frontier_table.c.status)
        )
        return {TaskStatus(status): count for status, count in self.session.execute(stmt).all()}

    def reclaim_stale(self, *, cutoff: datetime, job_id: str | None = None) -> int:
        stmt = (
            update(frontier_table)
            .where(frontier_table.c.status == TaskStatus.PROCESSING)
            .where(frontier_table.c.updated_at < cutoff)
            .values(status=TaskStatus.PENDING, updated_at=datetime.now(UTC))
        )
        if job_id is not None:
            stmt = stmt.where(frontier_table.c.job_id == job_id)
        return _rowcount(self.session.execute(stmt))


def _task_from_row(row: Row[Any]) -> FrontierTask:
    mapping = row._mapping  # noqa: SLF001
    return FrontierTask(
        id=mapping["id"],
        job_id=mapping["job_id"],
        kind=mapping["kind"],
        value=mapping["value"],
        status=mapping["status"],
        priority=mapping["priority"],
        depth=mapping["depth"],
        meta=dict(mapping["meta"] or {}),
        created_at=mapping["created_at"],
        updated_at=mapping["updated_at"],
    )


class SqlAlchemySourceDocumentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SourceDocument) -> None:
        self.session.add(entity)

    def get(self, document_id: UUID) -> SourceDocument | None:
        return self.session.get(SourceDocument, document_id)

    def latest_for_url(self, url: str) -> SourceDocument | None:
        stmt = (
            select(SourceDocument)
            .where(source_document_table.c.url == url)
            .where(source_document_table.c.status == DocumentStatus.SUCCESS)
            .order_by(source_document_table.c.crawled_at.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def for_job(self, job_id: str) -> list[SourceDocument]:
        stmt = (
            select(SourceDocument)
            .where(source_document_table.c.job_id == job_id)
            .order_by(source_document_table.c.crawled_at)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyClaimRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Claim) -> None:
        self.session.add(entity)

    def add_many(self, claims: Iterable[Claim]) -> list[Claim]:
        """Store each claim unless the same document already gave that value.

        Claims without a document are matched on their source domain instead.
        """

        stored: list[Claim] = []
        for claim in claims:
            if claim.source_document_id is None and self._recorded_without_document(claim):
                continue
            if insert_ignoring_conflicts(
                self.session, claim_table, _column_values(claim, claim_table)
            ):
                stored.append(claim)
        return stored

    def _recorded_without_document(self, claim: Claim) -> bool:
        stmt = (
            select(claim_table.c.id)
            .where(claim_table.c.item_id == claim.item_id)
            .where(claim_table.c.field_name == claim.field_name)
            .where(claim_table.c.normalized_value == claim.normalized_value)
            .where(claim_table.c.source_domain == claim.source_domain)
            .where(claim_table.c.source_document_id.is_(None))
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def for_item(self, item_id: str, field_name: str | None = None) -> list[Claim]:
        stmt = select(Claim).where(claim_table.c.item_id == item_id)
        if field_name is not None:
            stmt = stmt.where(claim_table.c.field_name == field_name)
        stmt = stmt.order_by(
            claim_table.c.extracted_at, claim_table.c.position, claim_table.c.id
        )
        return list(self.session.execute(stmt).scalars())

    def fields_for_item(self, item_id: str) -> list[str]:
        stmt = (
            select(claim_table.c.field_name)
            .where(claim_table.c.item_id == item_id)
            .distinct()
            .order_by(claim_table.c.field_name)
        )
        return list(self.session.execute(stmt).scalars())

    def supporting_documents(
        self, item_id: str, *, limit: int
    ) -> list[tuple[SourceDocument, Claim]]:
        """Highest-confidence claim per document URL, best first."""

        stmt = (
            select(SourceDocument, Claim)
            .join(Claim, claim_table.c.source_document_id == source_document_table.c.id)
            .where(claim_table.c.item_id == item_id)
            .order_by(claim_table.c.confidence.desc(), claim_table.c.extracted_at)
        )
        seen: set[str] = set()
        supporting: list[tuple[SourceDocument, Claim]] = []
        for document, claim in self.session.execute(stmt).tuples():
            if document.url in seen:
                continue
            seen.add(document.url)
            supporting.append((document, claim))
            if len(supporting) >= limit:
                break
        return supporting


class SqlAlchemyGraphRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    @_graph_storage
    def get_entity(self, entity_id: UUID) -> GraphEntity | None:
        return self.session.get(GraphEntity, entity_id)

    @_graph_storage
    def find_entity(self, kind: EntityKind, identity_key: str) -> GraphEntity | None:
        stmt = (
            select(GraphEntity)
            .where(entity_table.c.kind == kind)
            .where(entity_table.c.identity_key == identity_key)
        )
        return self.session.execute(stmt).scalars().first()

    @_graph_storage
    def find_aliases(self, alias: str) -> list[Alias]:
        stmt = (
            select(Alias)
            .where(alias_table.c.alias == alias)
            .order_by(alias_table.c.confidence.desc(), alias_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    @_graph_storage
    def get_alias(self, alias: str, locale: str) -> Alias | None:
        stmt = (
            select(Alias)
            .where(alias_table.c.alias == alias)
            .where(alias_table.c.locale == locale)
        )
        return self.session.execute(stmt).scalars().first()

    @_graph_storage
    def insert_entity(self, entity: GraphEntity) -> bool:
        return insert_ignoring_conflicts(
            self.session, entity_table, _column_values(entity, entity_table)
        )

    @_graph_storage
    def insert_alias(self, alias: Alias) -> bool:
        return insert_ignoring_conflicts(
            self.session, alias_table, _column_values(alias, alias_table)
        )

    @_graph_storage
    def insert_edge(self, edge: Edge) -> bool:
        return insert_ignoring_conflicts(self.session, edge_table, _column_values(edge, edge_table))

    @_graph_storage
    def insert_evidence(self, evidence: GraphEvidence) -> bool:
        return insert_ignoring_conflicts(
            self.session, graph_evidence_table, _column_values(evidence, graph_evidence_table)
        )

    @_graph_storage
    def has_edge(self, from_entity_id: UUID, to_entity_id: UUID, kind: EdgeKind) -> bool:
        stmt = (
            select(edge_table.c.id)
            .where(edge_table.c.from_entity_id == from_entity_id)
            .where(edge_table.c.to_entity_id == to_entity_id)
            .where(edge_table.c.kind == kind)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none() is not None

    @_graph_storage
    def neighbours(self, entity_id: UUID, kind: EdgeKind) -> list[GraphEntity]:
        outgoing = select(edge_table.c.to_entity_id).where(
            edge_table.c.from_entity_id == entity_id, edge_table.c.kind == kind
        )
        incoming = select(edge_table.c.from_entity_id).where(
            edge_table.c.to_entity_id == entity_id, edge_table.c.kind == kind
        )
        stmt = (
            select(GraphEntity)
            .where(or_(entity_table.c.id.in_(outgoing), entity_table.c.id.in_(incoming)))
            .order_by(entity_table.c.canonical_name)
        )
        return list(self.session.execute(stmt).scalars())
