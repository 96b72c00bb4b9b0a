"""Raw source documents and the field claims extracted from them."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from urllib.parse import urlsplit
from uuid import UUID

from .base import Record, utc_now
from .enums import DocumentStatus, SourceKind
from .values import ClaimValue, normalize_value


def content_hash(raw_content: str | None, url: str) -> str:
    """MD5 of the page content, or of the URL when nothing was captured."""

    payload = raw_content if raw_content else url
    return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()


def domain_of(url: str) -> str:
    host = urlsplit(url if "//" in url else f"//{url}").hostname or ""
    return host.removeprefix("www.").lower()


@dataclass(eq=False, kw_only=True)
class SourceDocument(Record):
    job_id: str
    url: str
    domain: str
    raw_content: str | None = None
    content_hash: str
    status: DocumentStatus = DocumentStatus.SUCCESS
    http_status: int | None = None
    title: str | None = None
    crawled_at: datetime = field(default_factory=utc_now)

    def is_fresh(self, *, now: datetime, max_age: timedelta) -> bool:
        return self.status is DocumentStatus.SUCCESS and now - self.crawled_at < max_age


@dataclass(eq=False, kw_only=True)
class Claim(Record):
    """One source's assertion about one field of one item. Never edited."""

    item_id: str
    field_name: str
    value: ClaimValue
    normalized_value: str = ""
    confidence: int = 50
    source_domain: str
    source_kind: SourceKind = SourceKind.SCRAPE
    source_document_id: UUID | None = None
    extracted_at: datetime = field(default_factory=utc_now)
    # order within the extraction batch, breaks ties on equal extracted_at
    position: int = 0

    def __post_init__(self) -> None:
        if not self.normalized_value:
            self.normalized_value = normalize_value(self.value)
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"Claim confidence must be within 0..100, got {self.confidence}")

    @property
    def is_agent(self) -> bool:
        return self.source_kind is SourceKind.AGENT
