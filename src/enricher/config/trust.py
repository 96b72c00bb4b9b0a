"""Environment overrides for claim arbitration."""

from __future__ import annotations

from dataclasses import replace

from enricher.domain.trust import TrustPolicy

from .env import env_float, env_int, env_list


def get_trust_policy(*, base: TrustPolicy | None = None) -> TrustPolicy:
    """Defaults, with thresholds and extra domains taken from the environment."""

    policy = base or TrustPolicy()
    return replace(
        policy,
        official_domains=policy.official_domains + env_list("ENRICHER_OFFICIAL_DOMAINS"),
        trusted_retailers=policy.trusted_retailers + env_list("ENRICHER_TRUSTED_RETAILERS"),
        conflict_ratio=env_float("ENRICHER_CONFLICT_RATIO", policy.conflict_ratio),
        conflict_confidence=env_float("ENRICHER_CONFLICT_CLAMP", policy.conflict_confidence),
        agent_min_score=env_int("ENRICHER_AGENT_MIN_SCORE", policy.agent_min_score),
        auto_publish_min_confidence=env_float(
            "ENRICHER_AUTO_PUBLISH_MIN_CONFIDENCE", policy.auto_publish_min_confidence
        ),
    )
