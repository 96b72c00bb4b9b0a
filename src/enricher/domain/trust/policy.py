"""Tunable inputs of claim arbitration.

The conflict thresholds were picked empirically; they are parameters, not
derived constants, and every deployment may override them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_OFFICIAL_DOMAINS: Final[tuple[str, ...]] = (
    "hp.com",
    "support.hp.com",
    "canon.com",
    "canon.ru",
    "canon-europe.com",
    "usa.canon.com",
    "brother.com",
    "brother.ru",
    "xerox.com",
    "xerox.ru",
    "kyoceradocumentsolutions.ru",
    "kyoceradocumentsolutions.eu",
    "ricoh.ru",
    "pantum.ru",
)

DEFAULT_TRUSTED_RETAILERS: Final[tuple[str, ...]] = (
    "nix.ru",
    "dns-shop.ru",
    "citilink.ru",
    "regard.ru",
    "komus.ru",
    "rashodnika.net",
    "cartridge.ru",
    "rm-company.ru",
)

DEFAULT_DOMAIN_SCORES: Final[Mapping[str, int]] = {
    "amazon.com": 70,
    "alibaba.com": 60,
}


@dataclass(frozen=True, slots=True)
class TrustPolicy:
    official_domains: tuple[str, ...] = DEFAULT_OFFICIAL_DOMAINS
    trusted_retailers: tuple[str, ...] = DEFAULT_TRUSTED_RETAILERS
    domain_scores: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_DOMAIN_SCORES))

    official_score: int = 100
    trusted_retailer_score: int = 90
    agent_score: int = 75
    default_score: int = 50

    # runner-up score >= conflict_ratio * winner score marks the field as conflicting
    conflict_ratio: float = 0.7
    conflict_confidence: float = 0.4
    conflict_clamp_below: float = 0.9

    agent_min_score: int = 90
    agent_cap_score: int = 90
    agent_capped_confidence: float = 0.75
    agent_conflicted_confidence: float = 0.5

    auto_publish_min_confidence: float = 0.8

    def __post_init__(self) -> None:
        if not 0 < self.conflict_ratio <= 1:
            raise ValueError(f"conflict_ratio must be within (0, 1], got {self.conflict_ratio}")
        for name in ("conflict_confidence", "auto_publish_min_confidence"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
