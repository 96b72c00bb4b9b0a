"""Domain model for claims, sources, the crawl frontier and the identity graph."""

from __future__ import annotations

from .base import Record, new_id, utc_now
from .enums import (
    AliasKind,
    DocumentStatus,
    EdgeKind,
    EntityKind,
    ResolutionMethod,
    SourceKind,
    TaskKind,
    TaskStatus,
)
from .frontier import DEFAULT_DEPTH, DEFAULT_PRIORITY, FrontierStats, FrontierTask
from .graph import GLOBAL_LOCALE, Alias, Edge, GraphEntity, GraphEvidence
from .sources import Claim, SourceDocument, content_hash, domain_of
from .values import (
    ClaimValue,
    MetadataValue,
    identity_key_for,
    normalize_identifier,
    normalize_value,
)

__all__ = [
    "DEFAULT_DEPTH",
    "DEFAULT_PRIORITY",
    "GLOBAL_LOCALE",
    "Alias",
    "AliasKind",
    "Claim",
    "ClaimValue",
    "DocumentStatus",
    "Edge",
    "EdgeKind",
    "EntityKind",
    "FrontierStats",
    "FrontierTask",
    "GraphEntity",
    "GraphEvidence",
    "MetadataValue",
    "Record",
    "ResolutionMethod",
    "SourceDocument",
    "SourceKind",
    "TaskKind",
    "TaskStatus",
    "content_hash",
    "domain_of",
    "identity_key_for",
    "new_id",
    "normalize_identifier",
    "normalize_value",
    "utc_now",
]
