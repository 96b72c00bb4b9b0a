"""SQLAlchemy table metadata and imperative mappings for the domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from enricher.domain.model import (
    GLOBAL_LOCALE,
    Alias,
    AliasKind,
    Claim,
    ClaimValue,
    DocumentStatus,
    Edge,
    EdgeKind,
    EntityKind,
    GraphEntity,
    GraphEvidence,
    SourceDocument,
    SourceKind,
    TaskKind,
    TaskStatus,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
ENUM_LENGTH: Final[int] = 32


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class ClaimValueType(TypeDecorator[ClaimValue]):
    """Scalar claim values stored as JSON text so their type survives a round trip."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: ClaimValue | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Dialect) -> ClaimValue | None:
        _ = dialect
        if value is None:
            return None
        loaded: Any = json.loads(value)
        if isinstance(loaded, str | int | float | bool):
            return loaded
        return str(loaded)


def _enum(enum_cls: type[Any]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=ENUM_LENGTH,
        values_callable=lambda members: [member.value for member in members],
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Identity graph --------------------------------------------------------------

entity_table = Table(
    "entities",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("kind", _enum(EntityKind), nullable=False),
    Column("identity_key", String, nullable=False),
    Column("canonical_name", String, nullable=False),
    Column("metadata", JSON, key="attributes", nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("kind", "identity_key"),
)

alias_table = Table(
    "aliases",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "entity_id",
        UUIDColumnType,
        ForeignKey("entities.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("alias", String, nullable=False),
    Column("kind", _enum(AliasKind), nullable=False),
    Column("locale", String(16), nullable=False, default=GLOBAL_LOCALE),
    Column("confidence", Integer, nullable=False, default=100),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("alias", "locale"),
    Index("ix_aliases_entity_id", "entity_id"),
)

edge_table = Table(
    "edges",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "from_entity_id",
        UUIDColumnType,
        ForeignKey("entities.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "to_entity_id",
        UUIDColumnType,
        ForeignKey("entities.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("kind", _enum(EdgeKind), nullable=False),
    Column("metadata", JSON, key="attributes", nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("from_entity_id", "to_entity_id", "kind"),
    Index("ix_edges_to_entity_id", "to_entity_id"),
)

graph_evidence_table = Table(
    "graph_evidence",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("edge_id", UUIDColumnType, ForeignKey("edges.id", ondelete="CASCADE"), nullable=True),
    Column(
        "alias_id", UUIDColumnType, ForeignKey("aliases.id", ondelete="CASCADE"), nullable=True
    ),
    Column("source_url", String, nullable=False),
    Column("snippet", Text, nullable=True),
    Column("confidence", Integer, nullable=False, default=100),
    Column("fetched_at", UTCDateTime(), nullable=False),
    CheckConstraint("(edge_id IS NULL) <> (alias_id IS NULL)", name="single_target"),
    UniqueConstraint("edge_id", "source_url"),
    UniqueConstraint("alias_id", "source_url"),
)

# Crawl pipeline --------------------------------------------------------------

frontier_table = Table(
    "frontier",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", String, nullable=False),
    Column("kind", _enum(TaskKind), nullable=False),
    Column("value", Text, nullable=False),
    Column("status", _enum(TaskStatus), nullable=False, default=TaskStatus.PENDING),
    Column("priority", Integer, nullable=False, default=50),
    Column("depth", Integer, nullable=False, default=0),
    Column("meta", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("job_id", "kind", "value"),
    Index("ix_frontier_claim_order", "job_id", "status", "priority", "id"),
)

source_document_table = Table(
    "source_documents",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("job_id", String, nullable=False),
    Column("url", Text, nullable=False),
    Column("domain", String, nullable=False),
    Column("raw_content", Text, nullable=True),
    Column("content_hash", String(64), nullable=False),
    Column("status", _enum(DocumentStatus), nullable=False),
    Column("http_status", Integer, nullable=True),
    Column("title", Text, nullable=True),
    Column("crawled_at", UTCDateTime(), nullable=False),
    Index("ix_source_documents_url", "url", "crawled_at"),
    Index("ix_source_documents_job_id", "job_id"),
)

claim_table = Table(
    "claims",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("item_id", String, nullable=False),
    Column("field", String, key="field_name", nullable=False),
    Column("value", ClaimValueType(), nullable=False),
    Column("normalized_value", Text, nullable=False),
    Column("confidence", Integer, nullable=False),
    Column("source_domain", String, nullable=False),
    Column("source_kind", _enum(SourceKind), nullable=False),
    Column(
        "source_document_id",
        UUIDColumnType,
        ForeignKey("source_documents.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("extracted_at", UTCDateTime(), nullable=False),
    Column("position", Integer, nullable=False, default=0),
    Index("ix_claims_item_field", "item_id", "field_name"),
    UniqueConstraint("item_id", "field_name", "normalized_value", "source_document_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(GraphEntity, entity_table)
    mapper_registry.map_imperatively(Alias, alias_table)
    mapper_registry.map_imperatively(Edge, edge_table)
    mapper_registry.map_imperatively(GraphEvidence, graph_evidence_table)
    mapper_registry.map_imperatively(SourceDocument, source_document_table)
    mapper_registry.map_imperatively(Claim, claim_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
