from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from enricher.config import (
    ConfigurationError,
    MissingConfigurationError,
    env_float,
    env_int,
    env_list,
    get_pipeline_config,
    get_resilience_config,
    get_trust_policy,
    require_env_var,
    require_env_vars,
    resolve_log_level,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.setenv("MISSING_B", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)
    assert exc.value.names == ("MISSING_A", "MISSING_B")


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_numeric_readers_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ENRICHER_TEST_NUMBER", raising=False)

    assert env_int("ENRICHER_TEST_NUMBER", 7) == 7
    assert env_float("ENRICHER_TEST_NUMBER", 0.5) == 0.5


def test_numeric_readers_reject_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_TEST_NUMBER", "lots")

    with pytest.raises(ConfigurationError) as exc:
        env_int("ENRICHER_TEST_NUMBER", 1)
    assert exc.value.variable == "ENRICHER_TEST_NUMBER"
    with pytest.raises(ConfigurationError):
        env_float("ENRICHER_TEST_NUMBER", 1.0)


def test_env_list_trims_and_skips_empty_items(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_TEST_LIST", " a.com, ,b.ru ,")

    assert env_list("ENRICHER_TEST_LIST") == ("a.com", "b.ru")


def test_trust_policy_picks_up_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_OFFICIAL_DOMAINS", "brother.com")
    monkeypatch.setenv("ENRICHER_CONFLICT_RATIO", "0.5")
    monkeypatch.setenv("ENRICHER_AUTO_PUBLISH_MIN_CONFIDENCE", "0.9")

    policy = get_trust_policy()

    assert "brother.com" in policy.official_domains
    assert "hp.com" in policy.official_domains
    assert policy.conflict_ratio == 0.5
    assert policy.auto_publish_min_confidence == 0.9


def test_trust_policy_rejects_invalid_threshold(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_CONFLICT_RATIO", "1.5")

    with pytest.raises(ValueError, match="conflict_ratio"):
        get_trust_policy()


def test_pipeline_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_SOURCE_CACHE_HOURS", "2")
    monkeypatch.setenv("ENRICHER_STALE_TASK_MINUTES", "5")
    monkeypatch.setenv("ENRICHER_EVIDENCE_LIMIT", "3")

    config = get_pipeline_config()

    assert config.source_cache_ttl == timedelta(hours=2)
    assert config.stale_task_timeout == timedelta(minutes=5)
    assert config.evidence_limit == 3


def test_resilience_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ENRICHER_RETRY_MAX_ATTEMPTS",
        "ENRICHER_RETRY_BASE_DELAY",
        "ENRICHER_RETRY_MAX_DELAY",
        "ENRICHER_BREAKER_THRESHOLD",
        "ENRICHER_BREAKER_RESET_SECONDS",
        "ENRICHER_FETCH_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)

    config = get_resilience_config()

    assert config.retry.max_attempts == 4
    assert config.breaker.failure_threshold == 5
    assert config.breaker.reset_timeout == 30.0
    assert config.fetch.timeout_seconds == 30.0


def test_resilience_config_validates_policies(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_RETRY_MAX_ATTEMPTS", "0")

    with pytest.raises(ValueError, match="max_attempts"):
        get_resilience_config()


def test_log_level_comes_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_LOG_LEVEL", "debug")

    assert resolve_log_level() == logging.DEBUG


def test_unknown_log_level_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICHER_LOG_LEVEL", "chatty")

    with pytest.raises(ConfigurationError, match="ENRICHER_LOG_LEVEL"):
        resolve_log_level()
