"""Identity graph read and write paths."""

from __future__ import annotations

from .populator import GraphPopulator, PopulationResult
from .research import ResearchedItem
from .service import GraphService, IdentityMatch, LinkResult
from .writer import GraphWriter, WriteCounts

__all__ = [
    "GraphPopulator",
    "GraphService",
    "GraphWriter",
    "IdentityMatch",
    "LinkResult",
    "PopulationResult",
    "ResearchedItem",
    "WriteCounts",
]
