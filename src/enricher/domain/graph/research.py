"""Finalized item data handed to the graph write path."""

from __future__ import annotations

from dataclasses import dataclass

from enricher.domain.model import normalize_identifier


@dataclass(frozen=True, slots=True, kw_only=True)
class ResearchedItem:
    mpn: str
    brand: str | None = None
    title: str | None = None
    seo_title: str | None = None
    consumable_type: str | None = None
    compatible_devices: tuple[str, ...] = ()
    cross_references: tuple[str, ...] = ()
    barcodes: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()

    @property
    def identity_key(self) -> str:
        return normalize_identifier(self.mpn)

    @property
    def canonical_name(self) -> str:
        for candidate in (self.seo_title, self.title):
            if candidate and candidate.strip():
                return candidate.strip()
        return " ".join(part for part in (self.brand, self.mpn.strip()) if part)
