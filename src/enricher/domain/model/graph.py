"""Identity graph records: entities, aliases, edges and their provenance."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from .base import Record, utc_now
from .enums import AliasKind, EdgeKind, EntityKind
from .values import MetadataValue

GLOBAL_LOCALE = "global"


@dataclass(eq=False, kw_only=True)
class GraphEntity(Record):
    """A graph node; created once per ``(kind, identity_key)`` and never deleted.

    ``canonical_name`` is display text only. Two consumables may share a title
    while their keys (normalised MPNs) differ.
    """

    kind: EntityKind
    identity_key: str
    canonical_name: str
    attributes: dict[str, MetadataValue] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass(eq=False, kw_only=True)
class Alias(Record):
    entity_id: UUID
    alias: str
    kind: AliasKind = AliasKind.EXACT
    locale: str = GLOBAL_LOCALE
    confidence: int = 100
    created_at: datetime = field(default_factory=utc_now)


@dataclass(eq=False, kw_only=True)
class Edge(Record):
    from_entity_id: UUID
    to_entity_id: UUID
    kind: EdgeKind
    attributes: dict[str, MetadataValue] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)


@dataclass(eq=False, kw_only=True)
class GraphEvidence(Record):
    """Provenance attached to exactly one edge or alias."""

    source_url: str
    edge_id: UUID | None = None
    alias_id: UUID | None = None
    snippet: str | None = None
    confidence: int = 100
    fetched_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if (self.edge_id is None) == (self.alias_id is None):
            raise ValueError("GraphEvidence must reference exactly one of edge_id or alias_id")
