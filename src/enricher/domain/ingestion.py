"""Append-only capture of fetched documents and their extracted claims."""

from __future__ import annotations

from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from enricher.domain.model import (
    Claim,
    DocumentStatus,
    SourceDocument,
    SourceKind,
    content_hash,
    domain_of,
    normalize_value,
    utc_now,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from enricher.domain.ports.fetching import ExtractedClaim
    from enricher.domain.ports.unit_of_work import UnitOfWorkFactory

log = getLogger(__name__)

DEFAULT_CACHE_TTL = timedelta(hours=24)


class ClaimIngestion:
    """Persist source documents and claims; nothing written here is ever updated."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        cache_ttl: timedelta = DEFAULT_CACHE_TTL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self.cache_ttl = cache_ttl
        self._clock = clock

    def find_cached(self, url: str) -> SourceDocument | None:
        """Newest successful document for ``url`` still inside the validity window."""

        with self._uow_factory() as uow:
            document = uow.repositories.source_documents.latest_for_url(url)
        if document is None or not document.is_fresh(now=self._clock(), max_age=self.cache_ttl):
            return None
        log.debug("Reusing cached document %s for %s", document.id, url)
        return document

    def record_document(
        self,
        job_id: str,
        url: str,
        raw_content: str | None,
        *,
        status: DocumentStatus = DocumentStatus.SUCCESS,
        http_status: int | None = None,
        title: str | None = None,
    ) -> SourceDocument:
        document = SourceDocument(
            job_id=job_id,
            url=url,
            domain=domain_of(url),
            raw_content=raw_content,
            content_hash=content_hash(raw_content, url),
            status=status,
            http_status=http_status,
            title=title,
            crawled_at=self._clock(),
        )
        with self._uow_factory() as uow:
            uow.repositories.source_documents.add(document)
            uow.commit()
        return document

    def ingest_claims(
        self,
        item_id: str,
        extracted: Iterable[ExtractedClaim],
        *,
        document: SourceDocument | None = None,
        source_domain: str | None = None,
        source_kind: SourceKind = SourceKind.SCRAPE,
    ) -> list[Claim]:
        """Persist a batch of claims for ``item_id`` tied to ``document``.

        Returns the claims actually written. A value the same source already
        gave for the field is skipped, so replaying a batch stores nothing.
        """

        if source_domain is not None:
            domain = source_domain
        elif document is not None:
            domain = document.domain
        else:
            raise ValueError("Claims need a source document or an explicit source domain")
        extracted_at = self._clock()
        claims = [
            Claim(
                item_id=item_id,
                field_name=entry.field_name,
                value=entry.value,
                normalized_value=entry.normalized_value or normalize_value(entry.value),
                confidence=entry.confidence,
                source_domain=domain,
                source_kind=source_kind,
                source_document_id=document.id if document is not None else None,
                extracted_at=extracted_at,
                position=position,
            )
            for position, entry in enumerate(extracted)
        ]
        if not claims:
            return []
        with self._uow_factory() as uow:
            stored = uow.repositories.claims.add_many(claims)
            uow.commit()
        log.info(
            "Stored %s claim(s) for item %s from %s, %s already known",
            len(stored),
            item_id,
            domain,
            len(claims) - len(stored),
        )
        return stored
