"""Validation of extractor output and research payloads."""

from __future__ import annotations

from .schema import (
    ExtractedClaimPayload,
    ResearchedItemPayload,
    parse_extracted_claims,
    parse_researched_item,
)

__all__ = [
    "ExtractedClaimPayload",
    "ResearchedItemPayload",
    "parse_extracted_claims",
    "parse_researched_item",
]
