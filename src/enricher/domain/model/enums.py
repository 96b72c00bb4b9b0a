"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    BRAND = "brand"
    PRINTER = "printer"
    CONSUMABLE = "consumable"
    SERIES = "series"
    UNKNOWN = "unknown"


class AliasKind(StrEnum):
    EXACT = "exact"
    REGEX = "regex"
    WEAK_SIGNAL = "weak_signal"
    MACHINE_GENERATED = "machine_generated"


class EdgeKind(StrEnum):
    """Directed relationship types between graph entities."""

    COMPATIBLE_WITH = "COMPATIBLE_WITH"
    MANUFACTURED_BY = "MANUFACTURED_BY"
    ALSO_KNOWN_AS = "ALSO_KNOWN_AS"
    REPLACED_BY = "REPLACED_BY"
    PART_OF_SERIES = "PART_OF_SERIES"


class TaskKind(StrEnum):
    QUERY = "query"
    URL = "url"
    DOMAIN_CRAWL = "domain_crawl"
    DEEP_CRAWL = "deep_crawl"
    AGENT = "agent"
    ENRICHMENT = "enrichment"


class TaskStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {TaskStatus.COMPLETED, TaskStatus.FAILED}


class SourceKind(StrEnum):
    """How a claim was produced."""

    SCRAPE = "scrape"
    AGENT = "agent"
    MANUAL = "manual"


class DocumentStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"


class ResolutionMethod(StrEnum):
    OFFICIAL = "official"
    CONSENSUS = "consensus"
    SINGLE_SOURCE = "single_source"
    AGENT_RESULT = "agent_result"
