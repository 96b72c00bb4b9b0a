"""Read path of the identity graph.

The graph is an optimization layer: when its storage has not been initialised
every lookup degrades to a miss and callers fall back to full research.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from enricher.domain.errors import GraphUnavailableError
from enricher.domain.model import (
    GLOBAL_LOCALE,
    AliasKind,
    EdgeKind,
    EntityKind,
    normalize_identifier,
)

from .writer import GraphWriter

if TYPE_CHECKING:
    from uuid import UUID

    from enricher.domain.model import Alias
    from enricher.domain.ports.persistence import GraphRepository
    from enricher.domain.ports.unit_of_work import UnitOfWorkFactory

log = getLogger(__name__)

LOWERCASE_PENALTY = 5
IDENTIFIER_PENALTY = 10
EXPLICIT_LINK_CONFIDENCE = 100
INFERRED_LINK_CONFIDENCE = 90
INFERRED_SOURCE = "inference"


@dataclass(frozen=True, slots=True)
class IdentityMatch:
    entity_id: UUID
    canonical_name: str
    kind: EntityKind
    confidence: int


@dataclass(frozen=True, slots=True)
class LinkResult:
    entity_id: UUID
    entity_created: bool
    alias_created: bool


class GraphService:
    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = unit_of_work_factory

    def resolve_identity(self, query: str, brand: str | None = None) -> IdentityMatch | None:
        """Look ``query`` up in the alias index; ``None`` means "research it"."""

        text = query.strip()
        if not text:
            return None
        try:
            with self._uow_factory() as uow:
                return self._resolve(uow.repositories.graph, text, brand)
        except GraphUnavailableError:
            log.warning("Graph storage unavailable; treating %r as unresolved", text)
            return None

    def check_compatibility(self, consumable_ref: str, printer_ref: str) -> bool:
        consumable = self.resolve_identity(consumable_ref)
        printer = self.resolve_identity(printer_ref)
        if consumable is None or printer is None:
            return False
        try:
            with self._uow_factory() as uow:
                graph = uow.repositories.graph
                return graph.has_edge(
                    consumable.entity_id, printer.entity_id, EdgeKind.COMPATIBLE_WITH
                ) or graph.has_edge(
                    printer.entity_id, consumable.entity_id, EdgeKind.COMPATIBLE_WITH
                )
        except GraphUnavailableError:
            log.warning("Graph storage unavailable; compatibility unknown")
            return False

    def compatible_devices(self, ref: str) -> list[str]:
        """Canonical names of everything sharing a COMPATIBLE_WITH edge with ``ref``."""

        match = self.resolve_identity(ref)
        if match is None:
            return []
        try:
            with self._uow_factory() as uow:
                neighbours = uow.repositories.graph.neighbours(
                    match.entity_id, EdgeKind.COMPATIBLE_WITH
                )
        except GraphUnavailableError:
            return []
        return sorted({entity.canonical_name for entity in neighbours})

    def link_alias(
        self,
        alias: str,
        canonical_name: str,
        brand: str | None = None,
        source: str = INFERRED_SOURCE,
        *,
        kind: EntityKind = EntityKind.CONSUMABLE,
    ) -> LinkResult | None:
        """Attach ``alias`` to the entity keyed by ``canonical_name``, creating it if needed.

        An alias that already belongs to an entity of the same kind keeps its
        owner. Explicit links get confidence 100, links produced by inference 90.
        Repeating the call changes nothing.
        """

        alias_text = alias.strip()
        name = canonical_name.strip()
        if not alias_text or not name:
            raise ValueError("alias and canonical_name must be non-empty")
        confidence = (
            INFERRED_LINK_CONFIDENCE if source == INFERRED_SOURCE else EXPLICIT_LINK_CONFIDENCE
        )
        try:
            with self._uow_factory() as uow:
                writer = GraphWriter(uow.repositories.graph)
                entity = writer.ensure_entity(
                    kind,
                    name,
                    attributes={"brand": brand},
                    alias=alias_text,
                    alias_confidence=confidence,
                )
                uow.commit()
        except GraphUnavailableError:
            log.warning("Graph storage unavailable; alias %r not linked", alias_text)
            return None
        return LinkResult(
            entity_id=entity.id,
            entity_created=writer.counts.entities_created > 0,
            alias_created=writer.counts.aliases_created > 0,
        )

    def link_compatibility(
        self,
        consumable: str,
        printer: str,
        *,
        brand: str | None = None,
    ) -> bool:
        """Record that ``consumable`` works in ``printer``; True if the edge is new."""

        consumable_key = normalize_identifier(consumable)
        printer_key = normalize_identifier(printer)
        if not consumable_key or not printer_key:
            raise ValueError("consumable and printer must contain an identifier")
        try:
            with self._uow_factory() as uow:
                writer = GraphWriter(uow.repositories.graph)
                consumable_entity = writer.ensure_entity(
                    EntityKind.CONSUMABLE,
                    consumable.strip(),
                    identity_key=consumable_key,
                    attributes={"brand": brand},
                    alias=consumable_key,
                )
                printer_entity = writer.ensure_entity(
                    EntityKind.PRINTER,
                    printer.strip(),
                    identity_key=printer_key,
                    attributes={"brand": brand},
                    alias=printer_key,
                    alias_kind=AliasKind.MACHINE_GENERATED,
                    alias_confidence=INFERRED_LINK_CONFIDENCE,
                )
                created = writer.ensure_edge(
                    consumable_entity, printer_entity, EdgeKind.COMPATIBLE_WITH
                )
                uow.commit()
        except GraphUnavailableError:
            log.warning("Graph storage unavailable; compatibility not recorded")
            return False
        return created

    def _resolve(
        self, graph: GraphRepository, text: str, brand: str | None
    ) -> IdentityMatch | None:
        lookups = [(text, 0), (text.lower(), LOWERCASE_PENALTY)]
        lookups.append((normalize_identifier(text), IDENTIFIER_PENALTY))
        seen: set[str] = set()
        for candidate, penalty in lookups:
            if not candidate or candidate in seen:
                continue
            seen.add(candidate)
            match = self._best_match(graph, graph.find_aliases(candidate), brand, penalty)
            if match is not None:
                return match
        return None

    def _best_match(
        self,
        graph: GraphRepository,
        aliases: list[Alias],
        brand: str | None,
        penalty: int,
    ) -> IdentityMatch | None:
        wanted_brand = brand.strip().casefold() if brand else None
        best: tuple[tuple[bool, bool, int], IdentityMatch] | None = None
        for alias in aliases:
            entity = graph.get_entity(alias.entity_id)
            if entity is None:
                continue
            entity_brand = entity.attributes.get("brand")
            brand_agrees = (
                wanted_brand is not None
                and isinstance(entity_brand, str)
                and entity_brand.casefold() == wanted_brand
            )
            rank = (brand_agrees, alias.locale == GLOBAL_LOCALE, alias.confidence)
            if best is None or rank > best[0]:
                best = (
                    rank,
                    IdentityMatch(
                        entity_id=entity.id,
                        canonical_name=entity.canonical_name,
                        kind=entity.kind,
                        confidence=max(alias.confidence - penalty, 0),
                    ),
                )
        return best[1] if best else None
