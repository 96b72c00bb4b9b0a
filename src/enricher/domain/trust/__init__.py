"""Claim trust scoring and field resolution."""

from __future__ import annotations

from .engine import CandidateScore, ResolvedField, TrustEngine, resolve_field
from .policy import (
    DEFAULT_DOMAIN_SCORES,
    DEFAULT_OFFICIAL_DOMAINS,
    DEFAULT_TRUSTED_RETAILERS,
    TrustPolicy,
)
from .rules import TrustRule, build_trust_rules, domain_matches

__all__ = [
    "DEFAULT_DOMAIN_SCORES",
    "DEFAULT_OFFICIAL_DOMAINS",
    "DEFAULT_TRUSTED_RETAILERS",
    "CandidateScore",
    "ResolvedField",
    "TrustEngine",
    "TrustPolicy",
    "TrustRule",
    "build_trust_rules",
    "domain_matches",
    "resolve_field",
]
