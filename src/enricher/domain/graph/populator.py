"""Write path of the identity graph: upsert a finalized item's subgraph."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from enricher.domain.errors import GraphUnavailableError, MissingIdentifierError
from enricher.domain.model import (
    GLOBAL_LOCALE,
    AliasKind,
    EdgeKind,
    EntityKind,
    GraphEvidence,
    normalize_identifier,
)

from .writer import GraphWriter

if TYPE_CHECKING:
    from collections.abc import Iterable

    from enricher.domain.ports.unit_of_work import UnitOfWorkFactory

    from .research import ResearchedItem

log = getLogger(__name__)

DEVICE_ALIAS_CONFIDENCE = 90
WEAK_ALIAS_CONFIDENCE = 80
DEFAULT_EVIDENCE_LIMIT = 10
SNIPPET_LENGTH = 500


@dataclass(frozen=True, slots=True)
class PopulationResult:
    entities_created: int = 0
    edges_created: int = 0
    aliases_created: int = 0
    evidence_attached: int = 0
    skipped: bool = False


def _unique_keys(values: Iterable[str]) -> list[tuple[str, str]]:
    """(original, normalized) pairs, first occurrence wins, empty keys dropped."""

    seen: set[str] = set()
    pairs: list[tuple[str, str]] = []
    for value in values:
        key = normalize_identifier(value)
        if not key or key in seen:
            continue
        seen.add(key)
        pairs.append((value.strip(), key))
    return pairs


class GraphPopulator:
    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        evidence_limit: int = DEFAULT_EVIDENCE_LIMIT,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self.evidence_limit = evidence_limit

    def populate_from_research(
        self, item_id: str, item: ResearchedItem, job_id: str | None = None
    ) -> PopulationResult:
        """Upsert consumable, brand, devices and identifiers in one transaction.

        Re-running with the same data creates nothing and reports zero counts.
        """

        identity_key = item.identity_key
        if not identity_key:
            raise MissingIdentifierError(f"Item {item_id} has no usable MPN")

        try:
            with self._uow_factory() as uow:
                writer = GraphWriter(uow.repositories.graph)
                consumable = writer.ensure_entity(
                    EntityKind.CONSUMABLE,
                    item.canonical_name,
                    identity_key=identity_key,
                    attributes={
                        "brand": item.brand,
                        "mpn": item.mpn.strip(),
                        "item_id": item_id,
                        "consumable_type": item.consumable_type,
                    },
                    alias=identity_key,
                )

                if item.brand and normalize_identifier(item.brand):
                    brand = writer.ensure_entity(
                        EntityKind.BRAND,
                        item.brand.strip(),
                        alias=normalize_identifier(item.brand),
                    )
                    writer.ensure_edge(consumable, brand, EdgeKind.MANUFACTURED_BY)

                for name, key in _unique_keys(item.compatible_devices):
                    printer = writer.ensure_entity(
                        EntityKind.PRINTER,
                        name,
                        identity_key=key,
                        attributes={"brand": item.brand},
                        alias=key,
                        alias_kind=AliasKind.MACHINE_GENERATED,
                        alias_confidence=DEVICE_ALIAS_CONFIDENCE,
                    )
                    writer.ensure_edge(consumable, printer, EdgeKind.COMPATIBLE_WITH)

                for _, key in _unique_keys((*item.cross_references, *item.barcodes)):
                    writer.ensure_alias(consumable, key, kind=AliasKind.EXACT, confidence=100)
                for _, key in _unique_keys(item.aliases):
                    writer.ensure_alias(
                        consumable,
                        key,
                        kind=AliasKind.WEAK_SIGNAL,
                        confidence=WEAK_ALIAS_CONFIDENCE,
                    )
                uow.commit()
        except GraphUnavailableError:
            log.warning("Graph storage unavailable; skipping population of item %s", item_id)
            return PopulationResult(skipped=True)

        counts = writer.counts
        evidence = self._attach_evidence(item_id, identity_key)
        log.info(
            "Populated graph for item %s (job=%s): entities=%s, edges=%s, aliases=%s, evidence=%s",
            item_id,
            job_id,
            counts.entities_created,
            counts.edges_created,
            counts.aliases_created,
            evidence,
        )
        return PopulationResult(
            entities_created=counts.entities_created,
            edges_created=counts.edges_created,
            aliases_created=counts.aliases_created,
            evidence_attached=evidence,
        )

    def _attach_evidence(self, item_id: str, identity_key: str) -> int:
        """Best effort: runs after the structural commit so it can never undo it."""

        if self.evidence_limit <= 0:
            return 0
        try:
            with self._uow_factory() as uow:
                repositories = uow.repositories
                alias = repositories.graph.get_alias(identity_key, GLOBAL_LOCALE)
                if alias is None:
                    return 0
                attached = 0
                for document, claim in repositories.claims.supporting_documents(
                    item_id, limit=self.evidence_limit
                ):
                    snippet = f"{claim.field_name}: {claim.value}"[:SNIPPET_LENGTH]
                    attached += repositories.graph.insert_evidence(
                        GraphEvidence(
                            alias_id=alias.id,
                            source_url=document.url,
                            snippet=snippet,
                            confidence=claim.confidence,
                            fetched_at=document.crawled_at,
                        )
                    )
                uow.commit()
        except Exception:  # noqa: BLE001
            log.warning("Could not attach evidence for item %s", item_id, exc_info=True)
            return 0
        return attached
