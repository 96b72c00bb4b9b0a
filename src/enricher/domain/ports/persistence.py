"""Ports for persisting domain records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from enricher.domain.model import (
    Alias,
    Claim,
    Edge,
    EdgeKind,
    EntityKind,
    FrontierTask,
    GraphEntity,
    GraphEvidence,
    SourceDocument,
    TaskStatus,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from uuid import UUID


@runtime_checkable
class Repository[TRecord](Protocol):
    """Minimal repository contract for a persistent record store."""

    def add(self, entity: TRecord) -> None: ...


@runtime_checkable
class FrontierRepository(Protocol):
    """Persistence contract for crawl tasks.

    ``claim`` and ``finish`` are compare-and-swap operations: they only touch
    rows still in the expected source status.
    """

    def insert(self, task: FrontierTask) -> FrontierTask | None: ...

    def claim(self, job_id: str, *, limit: int) -> list[FrontierTask]: ...

    def finish(self, task_id: int, status: TaskStatus) -> bool: ...

    def get(self, task_id: int) -> FrontierTask | None: ...

    def count_by_status(self, job_id: str) -> dict[TaskStatus, int]: ...

    def reclaim_stale(self, *, cutoff: datetime, job_id: str | None = None) -> int: ...


@runtime_checkable
class SourceDocumentRepository(Repository[SourceDocument], Protocol):
    """Append-only store of fetched pages."""

    def get(self, document_id: UUID) -> SourceDocument | None: ...

    def latest_for_url(self, url: str) -> SourceDocument | None: ...

    def for_job(self, job_id: str) -> list[SourceDocument]: ...


@runtime_checkable
class ClaimRepository(Repository[Claim], Protocol):
    """Append-only store of extracted field claims."""

    def add_many(self, claims: Iterable[Claim]) -> list[Claim]: ...

    def for_item(self, item_id: str, field_name: str | None = None) -> list[Claim]: ...

    def fields_for_item(self, item_id: str) -> list[str]: ...

    def supporting_documents(
        self, item_id: str, *, limit: int
    ) -> Sequence[tuple[SourceDocument, Claim]]: ...


@runtime_checkable
class GraphRepository(Protocol):
    """Entity/alias/edge registry. ``insert_*`` methods ignore uniqueness conflicts
    and report whether a row was actually written."""

    def get_entity(self, entity_id: UUID) -> GraphEntity | None: ...

    def find_entity(self, kind: EntityKind, identity_key: str) -> GraphEntity | None: ...

    def find_aliases(self, alias: str) -> list[Alias]: ...

    def get_alias(self, alias: str, locale: str) -> Alias | None: ...

    def insert_entity(self, entity: GraphEntity) -> bool: ...

    def insert_alias(self, alias: Alias) -> bool: ...

    def insert_edge(self, edge: Edge) -> bool: ...

    def insert_evidence(self, evidence: GraphEvidence) -> bool: ...

    def has_edge(self, from_entity_id: UUID, to_entity_id: UUID, kind: EdgeKind) -> bool: ...

    def neighbours(self, entity_id: UUID, kind: EdgeKind) -> list[GraphEntity]: ...
