from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from enricher.adapters.sqlalchemy.mappings import (
    alias_table,
    edge_table,
    entity_table,
    graph_evidence_table,
)
from enricher.domain.errors import MissingIdentifierError
from enricher.domain.graph import GraphPopulator, GraphService, ResearchedItem
from enricher.domain.ingestion import ClaimIngestion
from enricher.domain.model import AliasKind, EntityKind
from enricher.domain.ports.fetching import ExtractedClaim

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import Table
    from sqlalchemy.engine import Engine

    from enricher.adapters.sqlalchemy import SqlAlchemyUnitOfWork


def _count(engine: Engine, table: Table) -> int:
    with engine.connect() as connection:
        return connection.execute(select(func.count()).select_from(table)).scalar_one()


@pytest.fixture
def item() -> ResearchedItem:
    return ResearchedItem(
        mpn="CE285A",
        brand="HP",
        title="HP 85A Black Toner",
        consumable_type="toner_cartridge",
        compatible_devices=("HP LaserJet P1102", "HP LaserJet M1132", "hp laserjet p1102 "),
        cross_references=("CE-285A",),
        barcodes=("0884962894040",),
        aliases=("85A",),
    )


@pytest.fixture
def populator(unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork]) -> GraphPopulator:
    return GraphPopulator(unit_of_work_factory)


def test_populate_creates_consumable_brand_and_devices(
    populator: GraphPopulator,
    item: ResearchedItem,
    sqlite_engine: Engine,
) -> None:
    result = populator.populate_from_research("sku-1", item, "job-1")

    # consumable, brand and two distinct printers
    assert result.entities_created == 4
    # MANUFACTURED_BY plus two COMPATIBLE_WITH
    assert result.edges_created == 3
    assert result.skipped is False
    assert _count(sqlite_engine, entity_table) == 4
    assert _count(sqlite_engine, edge_table) == 3


def test_populate_twice_creates_nothing_new(
    populator: GraphPopulator,
    item: ResearchedItem,
    sqlite_engine: Engine,
) -> None:
    populator.populate_from_research("sku-1", item, "job-1")
    aliases_before = _count(sqlite_engine, alias_table)

    again = populator.populate_from_research("sku-1", item, "job-1")

    assert (again.entities_created, again.edges_created, again.aliases_created) == (0, 0, 0)
    assert _count(sqlite_engine, entity_table) == 4
    assert _count(sqlite_engine, edge_table) == 3
    assert _count(sqlite_engine, alias_table) == aliases_before


def test_populated_identifiers_resolve_to_the_consumable(
    populator: GraphPopulator,
    item: ResearchedItem,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    populator.populate_from_research("sku-1", item)
    service = GraphService(unit_of_work_factory)

    by_mpn = service.resolve_identity("CE285A")
    by_cross_reference = service.resolve_identity("ce-285a")
    by_barcode = service.resolve_identity("0884962894040")
    by_weak_alias = service.resolve_identity("85A")

    assert by_mpn is not None
    assert by_mpn.canonical_name == "HP 85A Black Toner"
    assert by_mpn.kind is EntityKind.CONSUMABLE
    assert by_mpn.confidence == 100
    assert by_cross_reference is not None
    assert by_cross_reference.entity_id == by_mpn.entity_id
    assert by_barcode is not None
    assert by_barcode.entity_id == by_mpn.entity_id
    assert by_weak_alias is not None
    assert by_weak_alias.confidence == 80


def test_device_aliases_are_machine_generated(
    populator: GraphPopulator,
    item: ResearchedItem,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    populator.populate_from_research("sku-1", item)

    with unit_of_work_factory() as uow:
        alias = uow.repositories.graph.get_alias("HPLASERJETP1102", "global")

    assert alias is not None
    assert alias.kind is AliasKind.MACHINE_GENERATED
    assert alias.confidence == 90


def test_reuses_entity_already_reachable_by_alias(
    populator: GraphPopulator,
    item: ResearchedItem,
    sqlite_engine: Engine,
) -> None:
    populator.populate_from_research("sku-1", item)
    renamed = ResearchedItem(mpn="ce285a", brand="HP", seo_title="HP CE285A toner")

    result = populator.populate_from_research("sku-2", renamed)

    assert result.entities_created == 0
    assert _count(sqlite_engine, entity_table) == 4


def test_consumables_sharing_a_title_stay_distinct(
    populator: GraphPopulator,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
    sqlite_engine: Engine,
) -> None:
    title = "HP LaserJet Black Toner"
    populator.populate_from_research(
        "sku-1",
        ResearchedItem(
            mpn="CE285A", brand="HP", title=title, compatible_devices=("HP LaserJet P1102",)
        ),
    )
    populator.populate_from_research(
        "sku-2",
        ResearchedItem(
            mpn="CF283A", brand="HP", title=title, compatible_devices=("HP LaserJet M125",)
        ),
    )
    service = GraphService(unit_of_work_factory)

    first = service.resolve_identity("CE285A")
    second = service.resolve_identity("CF283A")

    assert first is not None and second is not None
    assert first.entity_id != second.entity_id
    assert first.canonical_name == second.canonical_name == title
    # two consumables, one brand, two printers
    assert _count(sqlite_engine, entity_table) == 5
    assert service.check_compatibility("CF283A", "HP LaserJet P1102") is False
    assert service.check_compatibility("CF283A", "HP LaserJet M125") is True
    assert service.compatible_devices("CE285A") == ["HP LaserJet P1102"]


def test_linked_alias_and_populated_mpn_converge(
    populator: GraphPopulator,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
    sqlite_engine: Engine,
) -> None:
    service = GraphService(unit_of_work_factory)
    service.link_alias("CE285A", "HP 85A", "HP", source="manual")

    result = populator.populate_from_research("sku-1", ResearchedItem(mpn="ce-285a", brand="HP"))

    assert result.entities_created == 1
    # the linked consumable plus the brand
    assert _count(sqlite_engine, entity_table) == 2


def test_canonical_name_falls_back_to_brand_and_mpn() -> None:
    assert ResearchedItem(mpn=" TN-2420 ", brand="Brother").canonical_name == "Brother TN-2420"
    assert ResearchedItem(mpn="TN-2420", title="  ").canonical_name == "TN-2420"
    assert ResearchedItem(mpn="x", title="Title", seo_title="SEO").canonical_name == "SEO"


def test_missing_identifier_is_rejected(populator: GraphPopulator) -> None:
    with pytest.raises(MissingIdentifierError):
        populator.populate_from_research("sku-1", ResearchedItem(mpn=" -- "))


def test_evidence_is_attached_from_supporting_documents(
    populator: GraphPopulator,
    item: ResearchedItem,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
    sqlite_engine: Engine,
) -> None:
    ingestion = ClaimIngestion(unit_of_work_factory)
    for url in ("https://nix.ru/ce285a", "https://citilink.ru/ce285a"):
        document = ingestion.record_document("job-1", url, f"<html>{url}</html>")
        extracted = [ExtractedClaim(field_name="yield", value="1600", confidence=70)]
        ingestion.ingest_claims("sku-1", extracted, document=document)

    result = populator.populate_from_research("sku-1", item)
    again = populator.populate_from_research("sku-1", item)

    assert result.evidence_attached == 2
    assert again.evidence_attached == 0
    assert _count(sqlite_engine, graph_evidence_table) == 2


def test_evidence_failure_keeps_structural_writes(
    item: ResearchedItem,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
    sqlite_engine: Engine,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    populator = GraphPopulator(unit_of_work_factory)

    def explode(self: object, item_id: str, *, limit: int) -> list[object]:
        raise RuntimeError("evidence store down")

    monkeypatch.setattr(
        "enricher.adapters.sqlalchemy.repositories.SqlAlchemyClaimRepository.supporting_documents",
        explode,
    )

    result = populator.populate_from_research("sku-1", item)

    assert result.entities_created == 4
    assert result.evidence_attached == 0
    assert _count(sqlite_engine, entity_table) == 4
