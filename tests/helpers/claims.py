"""Factories for claims and source documents."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from enricher.domain.model import Claim, ClaimValue, SourceKind

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_claim(
    value: ClaimValue,
    domain: str,
    *,
    field_name: str = "yield",
    item_id: str = "item-1",
    kind: SourceKind = SourceKind.SCRAPE,
    confidence: int = 80,
    offset: int = 0,
) -> Claim:
    return Claim(
        item_id=item_id,
        field_name=field_name,
        value=value,
        confidence=confidence,
        source_domain=domain,
        source_kind=kind,
        extracted_at=BASE_TIME + timedelta(seconds=offset),
        position=offset,
    )
