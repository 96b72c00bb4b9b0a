"""Idempotent upserts shared by every graph write path.

Each mutation is an insert that the storage ignores on a uniqueness conflict,
followed by a read of whichever row won. Concurrent writers therefore converge
on the same entities and edges without any global lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from enricher.domain.model import (
    GLOBAL_LOCALE,
    Alias,
    AliasKind,
    Edge,
    EdgeKind,
    EntityKind,
    GraphEntity,
    MetadataValue,
    identity_key_for,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from enricher.domain.ports.persistence import GraphRepository

log = getLogger(__name__)


@dataclass(slots=True)
class WriteCounts:
    entities_created: int = 0
    edges_created: int = 0
    aliases_created: int = 0


class GraphWriter:
    def __init__(self, repository: GraphRepository) -> None:
        self.repository = repository
        self.counts = WriteCounts()

    def ensure_entity(
        self,
        kind: EntityKind,
        canonical_name: str,
        *,
        identity_key: str | None = None,
        attributes: Mapping[str, MetadataValue | None] | None = None,
        alias: str | None = None,
        alias_kind: AliasKind = AliasKind.EXACT,
        alias_confidence: int = 100,
    ) -> GraphEntity:
        """Find or create an entity, preferring whatever ``alias`` already points at.

        Otherwise the entity is looked up by ``identity_key``, falling back to
        the normalised ``canonical_name`` only when no key is given.
        """

        key = identity_key or identity_key_for(canonical_name)
        entity = self._entity_for_alias(alias, kind) if alias else None
        if entity is None:
            entity = self.repository.find_entity(kind, key)
        if entity is None:
            candidate = GraphEntity(
                kind=kind,
                identity_key=key,
                canonical_name=canonical_name,
                attributes={
                    name: value for name, value in (attributes or {}).items() if value is not None
                },
            )
            if self.repository.insert_entity(candidate):
                self.counts.entities_created += 1
                log.debug("Created %s entity %r (%s)", kind, canonical_name, key)
            entity = self.repository.find_entity(kind, key)
            if entity is None:
                raise LookupError(f"{kind} entity {key!r} vanished after upsert")
        if alias:
            self.ensure_alias(entity, alias, kind=alias_kind, confidence=alias_confidence)
        return entity

    def ensure_alias(
        self,
        entity: GraphEntity,
        alias: str,
        *,
        kind: AliasKind = AliasKind.EXACT,
        confidence: int = 100,
        locale: str = GLOBAL_LOCALE,
    ) -> bool:
        if not alias:
            return False
        created = self.repository.insert_alias(
            Alias(
                entity_id=entity.id,
                alias=alias,
                kind=kind,
                locale=locale,
                confidence=confidence,
            )
        )
        if created:
            self.counts.aliases_created += 1
        return created

    def ensure_edge(
        self,
        source: GraphEntity,
        target: GraphEntity,
        kind: EdgeKind,
        *,
        attributes: Mapping[str, MetadataValue] | None = None,
    ) -> bool:
        created = self.repository.insert_edge(
            Edge(
                from_entity_id=source.id,
                to_entity_id=target.id,
                kind=kind,
                attributes=dict(attributes or {}),
            )
        )
        if created:
            self.counts.edges_created += 1
        return created

    def _entity_for_alias(self, alias: str, kind: EntityKind) -> GraphEntity | None:
        existing = self.repository.get_alias(alias, GLOBAL_LOCALE)
        if existing is None:
            return None
        entity = self.repository.get_entity(existing.entity_id)
        if entity is None or entity.kind is not kind:
            return None
        return entity
