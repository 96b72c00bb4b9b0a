"""Source trust as an ordered list of (predicate, score) rules.

Rules are evaluated top-down and the first match decides the score of a claim.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from enricher.domain.model import domain_of

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from enricher.domain.model import Claim

    from .policy import TrustPolicy

type ClaimPredicate = Callable[[Claim], bool]


@dataclass(frozen=True, slots=True)
class TrustRule:
    label: str
    predicate: ClaimPredicate
    score: int


def normalize_domain(domain: str) -> str:
    cleaned = domain.strip().lower()
    if "/" in cleaned:
        return domain_of(cleaned)
    return cleaned.removeprefix("www.")


def domain_matches(domain: str, candidates: Iterable[str]) -> bool:
    """True when ``domain`` is one of ``candidates`` or a subdomain of one."""

    host = normalize_domain(domain)
    if not host:
        return False
    return any(host == candidate or host.endswith(f".{candidate}") for candidate in candidates)


def is_official(claim: Claim, policy: TrustPolicy) -> bool:
    return domain_matches(claim.source_domain, policy.official_domains)


def build_trust_rules(policy: TrustPolicy) -> tuple[TrustRule, ...]:
    official = tuple(policy.official_domains)
    retailers = tuple(policy.trusted_retailers)
    rules: list[TrustRule] = [
        TrustRule(
            "official",
            lambda claim: domain_matches(claim.source_domain, official),
            policy.official_score,
        ),
        TrustRule(
            "trusted_retailer",
            lambda claim: domain_matches(claim.source_domain, retailers),
            policy.trusted_retailer_score,
        ),
        TrustRule("agent", lambda claim: claim.is_agent, policy.agent_score),
    ]
    for domain, score in policy.domain_scores.items():
        rules.append(
            TrustRule(
                f"domain:{domain}",
                lambda claim, domain=domain: domain_matches(claim.source_domain, (domain,)),
                score,
            )
        )
    return tuple(rules)


def score_claim(claim: Claim, rules: Sequence[TrustRule], *, default: int) -> int:
    for rule in rules:
        if rule.predicate(claim):
            return rule.score
    return default
