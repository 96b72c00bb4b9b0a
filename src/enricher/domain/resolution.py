"""Field resolution queries over stored claims, plus publish/review routing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from enricher.domain.trust import ResolvedField, TrustEngine

if TYPE_CHECKING:
    from enricher.domain.ports.unit_of_work import UnitOfWorkFactory


class Routing(StrEnum):
    AUTO_PUBLISH = "auto_publish"
    NEEDS_REVIEW = "needs_review"


@dataclass(frozen=True, slots=True)
class ItemResolution:
    item_id: str
    fields: dict[str, ResolvedField]
    routing: Routing
    review_reasons: dict[str, str] = field(default_factory=dict)


class FieldResolutionService:
    def __init__(self, unit_of_work_factory: UnitOfWorkFactory, engine: TrustEngine) -> None:
        self._uow_factory = unit_of_work_factory
        self.engine = engine

    def resolve_field(self, item_id: str, field_name: str) -> ResolvedField | None:
        with self._uow_factory() as uow:
            claims = uow.repositories.claims.for_item(item_id, field_name)
        return self.engine.resolve_field(claims)

    def resolve_item(self, item_id: str) -> ItemResolution:
        with self._uow_factory() as uow:
            claims = uow.repositories.claims.for_item(item_id)
        fields = self.engine.resolve_fields(claims)

        min_confidence = self.engine.policy.auto_publish_min_confidence
        reasons: dict[str, str] = {}
        for field_name, resolved in fields.items():
            if resolved.is_conflict:
                reasons[field_name] = "conflict"
            elif resolved.confidence < min_confidence:
                reasons[field_name] = "low_confidence"

        routing = Routing.NEEDS_REVIEW if reasons or not fields else Routing.AUTO_PUBLISH
        return ItemResolution(
            item_id=item_id, fields=fields, routing=routing, review_reasons=reasons
        )
