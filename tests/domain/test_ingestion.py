from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from enricher.domain.ingestion import ClaimIngestion
from enricher.domain.model import DocumentStatus, SourceKind, content_hash
from enricher.domain.ports.fetching import ExtractedClaim
from tests.helpers.clock import FakeClock

if TYPE_CHECKING:
    from collections.abc import Callable

    from enricher.adapters.sqlalchemy import SqlAlchemyUnitOfWork

URL = "https://www.nix.ru/autocatalog/hp/CE285A.html"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ingestion(
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork], clock: FakeClock
) -> ClaimIngestion:
    return ClaimIngestion(unit_of_work_factory, clock=clock)


def test_record_document_derives_domain_and_hash(ingestion: ClaimIngestion) -> None:
    document = ingestion.record_document("job-1", URL, "<html>toner</html>", http_status=200)

    assert document.domain == "nix.ru"
    assert document.content_hash == content_hash("<html>toner</html>", URL)
    assert document.status is DocumentStatus.SUCCESS


def test_empty_content_hashes_the_url(ingestion: ClaimIngestion) -> None:
    document = ingestion.record_document("job-1", URL, None, status=DocumentStatus.FAILED)

    assert document.content_hash == content_hash(None, URL)
    assert document.content_hash == content_hash("", URL)


def test_cached_document_is_reused_within_window(
    ingestion: ClaimIngestion, clock: FakeClock
) -> None:
    stored = ingestion.record_document("job-1", URL, "<html>v1</html>")

    clock.advance(hours=23)
    cached = ingestion.find_cached(URL)

    assert cached is not None
    assert cached.id == stored.id

    clock.advance(hours=2)
    assert ingestion.find_cached(URL) is None


def test_failed_documents_are_never_served_from_cache(ingestion: ClaimIngestion) -> None:
    ingestion.record_document("job-1", URL, None, status=DocumentStatus.FAILED)

    assert ingestion.find_cached(URL) is None


def test_newest_document_wins(ingestion: ClaimIngestion, clock: FakeClock) -> None:
    ingestion.record_document("job-1", URL, "<html>v1</html>")
    clock.advance(hours=1)
    newer = ingestion.record_document("job-2", URL, "<html>v2</html>")

    cached = ingestion.find_cached(URL)

    assert cached is not None
    assert cached.id == newer.id


def test_ingest_claims_appends_with_normalized_values(
    ingestion: ClaimIngestion,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    document = ingestion.record_document("job-1", URL, "<html/>")
    other = ingestion.record_document("job-1", "https://citilink.ru/ce285a", "<html/>")
    extracted = [
        ExtractedClaim(field_name="color", value="  Black ", confidence=90),
        ExtractedClaim(field_name="yield", value=1600),
    ]

    stored = ingestion.ingest_claims("sku-1", extracted, document=document)
    clock.advance(hours=1)
    ingestion.ingest_claims(
        "sku-1",
        [ExtractedClaim(field_name="yield", value="1 600", normalized_value="1600")],
        document=other,
    )

    assert [claim.normalized_value for claim in stored] == ["black", "1600"]
    with unit_of_work_factory() as uow:
        claims = uow.repositories.claims.for_item("sku-1")
        yield_claims = uow.repositories.claims.for_item("sku-1", "yield")
        fields = uow.repositories.claims.fields_for_item("sku-1")
    assert len(claims) == 3
    assert [claim.value for claim in yield_claims] == [1600, "1 600"]
    assert {claim.source_domain for claim in claims} == {"nix.ru", "citilink.ru"}
    assert fields == ["color", "yield"]


def test_replayed_claims_are_stored_once(
    ingestion: ClaimIngestion,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    document = ingestion.record_document("job-1", URL, "<html/>")
    extracted = [
        ExtractedClaim(field_name="yield", value=1600),
        ExtractedClaim(field_name="yield", value="1 600", normalized_value="1600"),
    ]

    first = ingestion.ingest_claims("sku-1", extracted, document=document)
    replayed = ingestion.ingest_claims("sku-1", extracted, document=document)

    assert [claim.value for claim in first] == [1600]
    assert replayed == []
    with unit_of_work_factory() as uow:
        assert len(uow.repositories.claims.for_item("sku-1")) == 1


def test_documentless_claims_are_deduplicated_per_domain(
    ingestion: ClaimIngestion,
    unit_of_work_factory: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    extracted = [ExtractedClaim(field_name="color", value="Black")]

    ingestion.ingest_claims("sku-1", extracted, source_domain="hp.com")
    again = ingestion.ingest_claims("sku-1", extracted, source_domain="hp.com")
    elsewhere = ingestion.ingest_claims("sku-1", extracted, source_domain="nix.ru")

    assert again == []
    assert len(elsewhere) == 1
    with unit_of_work_factory() as uow:
        assert len(uow.repositories.claims.for_item("sku-1", "color")) == 2


def test_ingest_claims_without_document_needs_domain(ingestion: ClaimIngestion) -> None:
    extracted = [ExtractedClaim(field_name="color", value="Black")]

    with pytest.raises(ValueError, match="source"):
        ingestion.ingest_claims("sku-1", extracted)

    stored = ingestion.ingest_claims(
        "sku-1", extracted, source_domain="agent.local", source_kind=SourceKind.AGENT
    )
    assert stored[0].is_agent
    assert stored[0].source_document_id is None


def test_ingest_nothing_is_a_no_op(ingestion: ClaimIngestion) -> None:
    assert ingestion.ingest_claims("sku-1", [], source_domain="nix.ru") == []
