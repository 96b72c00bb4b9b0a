"""Trust-weighted arbitration of conflicting field claims.

Resolution is a pure function of the claim set: claims are grouped by their
normalized value, each group scores the sum of its members' source trust, and
the highest group wins with ties going to the group seen first. A group backed
by an official source outranks every group that is not. Confidence is
then derived from how the winning value is backed (official source, agent
result, multi-domain consensus or a single source) and pulled down to a review
level whenever the runner-up is close enough to count as a conflict.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from enricher.domain.model import ResolutionMethod

from .policy import TrustPolicy
from .rules import build_trust_rules, is_official, normalize_domain, score_claim

if TYPE_CHECKING:
    from collections.abc import Iterable

    from enricher.domain.model import Claim, ClaimValue

OFFICIAL_CONFIDENCE = 1.0
AGENT_CONFIDENCE = 0.95
BROAD_CONSENSUS_CONFIDENCE = 0.9
CONSENSUS_CONFIDENCE = 0.8
SINGLE_SOURCE_CONFIDENCE = 0.5


@dataclass(frozen=True, slots=True)
class CandidateScore:
    """One distinct value and the evidence behind it."""

    value: ClaimValue
    normalized_value: str
    score: int
    domains: tuple[str, ...]
    claim_count: int
    has_official: bool = False
    has_agent: bool = False


@dataclass(frozen=True, slots=True)
class ResolvedField:
    """Derived view over a field's claims; recomputed on demand, never stored."""

    value: ClaimValue
    confidence: float
    sources: tuple[str, ...]
    is_conflict: bool
    method: ResolutionMethod
    score: int
    candidates: tuple[CandidateScore, ...] = ()

    @property
    def runner_up(self) -> CandidateScore | None:
        return self.candidates[1] if len(self.candidates) > 1 else None

    def needs_review(self, *, min_confidence: float) -> bool:
        return self.is_conflict or self.confidence < min_confidence


@dataclass(slots=True)
class _Group:
    value: ClaimValue
    normalized_value: str
    score: int = 0
    claim_count: int = 0
    domains: list[str] = field(default_factory=list)
    has_official: bool = False
    has_agent: bool = False

    def freeze(self) -> CandidateScore:
        return CandidateScore(
            value=self.value,
            normalized_value=self.normalized_value,
            score=self.score,
            domains=tuple(self.domains),
            claim_count=self.claim_count,
            has_official=self.has_official,
            has_agent=self.has_agent,
        )


class TrustEngine:
    def __init__(self, policy: TrustPolicy | None = None) -> None:
        self.policy = policy or TrustPolicy()
        self._rules = build_trust_rules(self.policy)

    def score_claim(self, claim: Claim) -> int:
        return score_claim(claim, self._rules, default=self.policy.default_score)

    def rank(self, claims: Iterable[Claim]) -> tuple[CandidateScore, ...]:
        """Group claims by value and order groups best first.

        Official backing ranks first, then score; ties keep first-seen order.
        """

        groups: dict[str, _Group] = {}
        for claim in claims:
            group = groups.get(claim.normalized_value)
            if group is None:
                group = _Group(value=claim.value, normalized_value=claim.normalized_value)
                groups[claim.normalized_value] = group
            group.score += self.score_claim(claim)
            group.claim_count += 1
            domain = normalize_domain(claim.source_domain)
            if domain not in group.domains:
                group.domains.append(domain)
            group.has_official = group.has_official or is_official(claim, self.policy)
            group.has_agent = group.has_agent or claim.is_agent
        ranked = sorted(groups.values(), key=lambda group: (not group.has_official, -group.score))
        return tuple(group.freeze() for group in ranked)

    def resolve_field(self, claims: Iterable[Claim]) -> ResolvedField | None:
        candidates = self.rank(claims)
        if not candidates:
            return None

        policy = self.policy
        winner = candidates[0]
        runner_up = candidates[1] if len(candidates) > 1 else None
        is_conflict = runner_up is not None and (
            runner_up.score >= policy.conflict_ratio * winner.score
        )

        distinct_domains = len(winner.domains)
        if winner.has_official:
            confidence, method = OFFICIAL_CONFIDENCE, ResolutionMethod.OFFICIAL
            is_conflict = False
        elif winner.has_agent and winner.score >= policy.agent_min_score:
            confidence, method = AGENT_CONFIDENCE, ResolutionMethod.AGENT_RESULT
        elif distinct_domains >= 3:
            confidence, method = BROAD_CONSENSUS_CONFIDENCE, ResolutionMethod.CONSENSUS
        elif distinct_domains == 2:
            confidence, method = CONSENSUS_CONFIDENCE, ResolutionMethod.CONSENSUS
        else:
            confidence, method = SINGLE_SOURCE_CONFIDENCE, ResolutionMethod.SINGLE_SOURCE

        if method is ResolutionMethod.AGENT_RESULT and winner.score < policy.agent_cap_score:
            cap = (
                policy.agent_conflicted_confidence
                if is_conflict
                else policy.agent_capped_confidence
            )
            confidence = min(confidence, cap)

        if is_conflict and confidence < policy.conflict_clamp_below:
            confidence = min(confidence, policy.conflict_confidence)

        return ResolvedField(
            value=winner.value,
            confidence=confidence,
            sources=winner.domains,
            is_conflict=is_conflict,
            method=method,
            score=winner.score,
            candidates=candidates,
        )

    def resolve_fields(self, claims: Iterable[Claim]) -> dict[str, ResolvedField]:
        """Resolve every field present in ``claims``, keyed by field name."""

        by_field: defaultdict[str, list[Claim]] = defaultdict(list)
        for claim in claims:
            by_field[claim.field_name].append(claim)
        resolved: dict[str, ResolvedField] = {}
        for field_name, field_claims in by_field.items():
            result = self.resolve_field(field_claims)
            if result is not None:
                resolved[field_name] = result
        return resolved


def resolve_field(
    claims: Iterable[Claim], *, policy: TrustPolicy | None = None
) -> ResolvedField | None:
    return TrustEngine(policy).resolve_field(claims)
