from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from enricher.adapters.resilience import is_rate_limited, parse_timestamp, rate_limit_wait
from enricher.domain.errors import RateLimitedError, TransientUpstreamError, error_for_status

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2024-05-01T12:00:30+00:00", NOW + timedelta(seconds=30)),
        ("2024-05-01T12:00:30", NOW + timedelta(seconds=30)),
        ("Wed, 01 May 2024 12:01:00 GMT", NOW + timedelta(minutes=1)),
        ("Wed May 01 2024 15:00:45 GMT+0300 (Moscow Standard Time)", NOW + timedelta(seconds=45)),
        ("1714564830", NOW + timedelta(seconds=30)),
    ],
)
def test_parse_timestamp_formats(text: str, expected: datetime) -> None:
    assert parse_timestamp(text) == expected


def test_parse_timestamp_rejects_noise() -> None:
    assert parse_timestamp("soon") is None
    assert parse_timestamp("   ") is None


def test_only_rate_limits_are_detected() -> None:
    assert is_rate_limited(RateLimitedError("slow down"))
    assert is_rate_limited(RuntimeError("HTTP 429 from upstream"))
    assert is_rate_limited(RuntimeError("Rate limit exceeded"))
    assert not is_rate_limited(TransientUpstreamError("502 bad gateway", status_code=502))
    assert rate_limit_wait(TransientUpstreamError("502"), now=NOW) is None


def test_structured_reset_time_wins() -> None:
    error = RateLimitedError("slow down", retry_after=5.0, reset_at=NOW + timedelta(seconds=12))

    assert rate_limit_wait(error, now=NOW) == 12.0


def test_structured_retry_after() -> None:
    assert rate_limit_wait(RateLimitedError("slow down", retry_after=7.5), now=NOW) == 7.5


def test_reset_time_parsed_from_message() -> None:
    error = RuntimeError("Rate limit exceeded, resets at 2024-05-01T12:00:20Z (in 20s)")

    assert rate_limit_wait(error, now=NOW) == 20.0


def test_reset_time_in_the_past_waits_zero() -> None:
    error = RuntimeError("rate limit: resets at 2024-05-01T11:00:00+00:00")

    assert rate_limit_wait(error, now=NOW) == 0.0


def test_retry_after_seconds_in_message() -> None:
    assert rate_limit_wait(RuntimeError("429: retry after 3s"), now=NOW) == 3.0


def test_retry_after_header_seconds_and_date() -> None:
    seconds = error_for_status(429, "Too Many Requests", headers={"Retry-After": "9"})
    dated = error_for_status(
        429, "Too Many Requests", headers={"Retry-After": "Wed, 01 May 2024 12:00:04 GMT"}
    )

    assert seconds is not None and dated is not None
    assert rate_limit_wait(seconds, now=NOW) == 9.0
    assert rate_limit_wait(dated, now=NOW) == 4.0


def test_httpx_status_error_headers() -> None:
    request = httpx.Request("GET", "https://example.com")
    response = httpx.Response(429, headers={"retry-after": "2"}, request=request)
    error = httpx.HTTPStatusError("429", request=request, response=response)

    assert rate_limit_wait(error, now=NOW) == 2.0


def test_rate_limit_without_hint_returns_none() -> None:
    assert rate_limit_wait(RateLimitedError("slow down"), now=NOW) is None
