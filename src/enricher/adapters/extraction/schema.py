"""Pydantic models for extraction output and finalized research payloads."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from enricher.domain.errors import MissingIdentifierError
from enricher.domain.graph import ResearchedItem
from enricher.domain.ports.fetching import ExtractedClaim

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

log = logging.getLogger(__name__)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _unique_strings(values: Iterable[str | None]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        if value is None:
            continue
        stripped = value.strip()
        if stripped:
            seen.setdefault(stripped, None)
    return tuple(seen)


class ExtractionBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ExtractedClaimPayload(ExtractionBaseModel):
    field: str
    value: bool | int | float | str
    confidence: int = Field(default=50, ge=0, le=100)
    normalized_value: str | None = Field(default=None, alias="normalizedValue")

    @field_validator("field")
    @classmethod
    def _require_field(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("field name must not be blank")
        return stripped

    @field_validator("confidence", mode="before")
    @classmethod
    def _round_confidence(cls, value: object) -> object:
        if isinstance(value, float):
            return round(value)
        return value

    _normalize_blank = field_validator("normalized_value", mode="before")(_blank_to_none)

    def to_domain(self) -> ExtractedClaim:
        return ExtractedClaim(
            field_name=self.field,
            value=self.value,
            confidence=self.confidence,
            normalized_value=self.normalized_value,
        )


def parse_extracted_claims(payload: Iterable[object]) -> list[ExtractedClaim]:
    """Validate raw extractor output, dropping entries that do not fit the schema."""

    claims: list[ExtractedClaim] = []
    for index, entry in enumerate(payload):
        try:
            model = ExtractedClaimPayload.model_validate(entry)
        except ValidationError as exc:
            log.warning("Dropping extracted claim #%d: %s", index, exc.error_count())
            log.debug("Invalid claim payload %r: %s", entry, exc)
            continue
        claims.append(model.to_domain())
    return claims


class MpnIdentityPayload(ExtractionBaseModel):
    mpn: str | None = None
    cross_reference_mpns: list[str | None] = Field(default_factory=list)

    _normalize_mpn = field_validator("mpn", mode="before")(_blank_to_none)


class MarketingPayload(ExtractionBaseModel):
    seo_title: str | None = None

    _normalize_title = field_validator("seo_title", mode="before")(_blank_to_none)


class TypeClassificationPayload(ExtractionBaseModel):
    family: str | None = None


class PrinterCompatibilityPayload(ExtractionBaseModel):
    model: str
    canonical_name: str | None = Field(default=None, alias="canonicalName")

    _normalize_name = field_validator("canonical_name", mode="before")(_blank_to_none)

    @property
    def display_name(self) -> str:
        return self.canonical_name or self.model


class ResearchedItemPayload(ExtractionBaseModel):
    """Finalized research data as stored for an item.

    Accepts both the nested shape (``mpn_identity``/``marketing``) and the
    flat legacy keys (``mpn``, ``model``, ``consumable_type``).
    """

    mpn_identity: MpnIdentityPayload | None = None
    mpn: str | None = None
    model: str | None = None
    brand: str | None = None
    title: str | None = None
    marketing: MarketingPayload | None = None
    type_classification: TypeClassificationPayload | None = None
    consumable_type: str | None = None
    compatible_printers_ru: list[str | PrinterCompatibilityPayload] = Field(default_factory=list)
    cross_reference_mpns: list[str | None] = Field(default_factory=list)
    gtin: list[str | None] = Field(default_factory=list)
    aliases: list[str | None] = Field(default_factory=list)

    _normalize_blank = field_validator(
        "mpn", "model", "brand", "title", "consumable_type", mode="before"
    )(_blank_to_none)

    @field_validator("gtin", mode="before")
    @classmethod
    def _stringify_barcodes(cls, value: object) -> object:
        # barcodes arrive as numbers from some sources
        if isinstance(value, list):
            entries = cast(list[object], value)
            return [str(entry) if isinstance(entry, int) else entry for entry in entries]
        return value

    @property
    def resolved_mpn(self) -> str | None:
        if self.mpn_identity is not None and self.mpn_identity.mpn:
            return self.mpn_identity.mpn
        return self.mpn or self.model

    def to_domain(self) -> ResearchedItem:
        mpn = self.resolved_mpn
        if mpn is None:
            raise MissingIdentifierError("Research payload carries no MPN")
        cross_references = list(self.cross_reference_mpns)
        if self.mpn_identity is not None:
            cross_references.extend(self.mpn_identity.cross_reference_mpns)
        printers = [
            entry if isinstance(entry, str) else entry.display_name
            for entry in self.compatible_printers_ru
        ]
        family = self.type_classification.family if self.type_classification else None
        return ResearchedItem(
            mpn=mpn,
            brand=self.brand,
            title=self.title,
            seo_title=self.marketing.seo_title if self.marketing else None,
            consumable_type=family or self.consumable_type,
            compatible_devices=_unique_strings(printers),
            cross_references=_unique_strings(cross_references),
            barcodes=_unique_strings(self.gtin),
            aliases=_unique_strings(self.aliases),
        )


def parse_researched_item(payload: Mapping[str, object]) -> ResearchedItem:
    return ResearchedItemPayload.model_validate(payload).to_domain()
