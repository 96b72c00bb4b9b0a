"""Defaults for source caching, stale task recovery and evidence capture."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import env_float, env_int

DEFAULT_SOURCE_CACHE_HOURS = 24.0
DEFAULT_STALE_TASK_MINUTES = 15.0
DEFAULT_EVIDENCE_LIMIT = 10


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    source_cache_ttl: timedelta = timedelta(hours=DEFAULT_SOURCE_CACHE_HOURS)
    stale_task_timeout: timedelta = timedelta(minutes=DEFAULT_STALE_TASK_MINUTES)
    evidence_limit: int = DEFAULT_EVIDENCE_LIMIT


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        source_cache_ttl=timedelta(
            hours=env_float("ENRICHER_SOURCE_CACHE_HOURS", DEFAULT_SOURCE_CACHE_HOURS)
        ),
        stale_task_timeout=timedelta(
            minutes=env_float("ENRICHER_STALE_TASK_MINUTES", DEFAULT_STALE_TASK_MINUTES)
        ),
        evidence_limit=env_int("ENRICHER_EVIDENCE_LIMIT", DEFAULT_EVIDENCE_LIMIT),
    )
