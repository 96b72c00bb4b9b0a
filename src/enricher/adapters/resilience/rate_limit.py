"""Extract provider-dictated retry times from rate-limit failures.

Providers report the earliest retry time in different shapes: an explicit
"resets at <timestamp>" in the error text, "retry after <N>s", or a
``Retry-After`` header holding seconds or an HTTP date.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Final

import httpx

from enricher.domain.errors import RateLimitedError

if TYPE_CHECKING:
    from collections.abc import Mapping

_RESETS_AT: Final = re.compile(r"resets at\s+(?P<when>[^()\n]+)", re.IGNORECASE)
_RETRY_AFTER_TEXT: Final = re.compile(
    r"retry[ -]after[:\s]+(?P<seconds>\d+(?:\.\d+)?)\s*s", re.IGNORECASE
)
_JS_DATE: Final = re.compile(
    r"\w{3} (?P<date>\w{3} \d{1,2} \d{4} \d{2}:\d{2}:\d{2}) GMT(?P<offset>[+-]\d{4})"
)
_RATE_LIMIT_MARKERS: Final = ("429", "rate limit", "too many requests")


def parse_timestamp(text: str) -> datetime | None:
    """Parse ISO-8601, RFC 2822 / HTTP dates, JavaScript ``Date`` strings or epoch seconds."""

    value = text.strip().rstrip(".,;")
    if not value:
        return None
    if value.isdigit():
        return datetime.fromtimestamp(int(value), UTC)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        parsed = None
    if parsed is None:
        js_match = _JS_DATE.search(value)
        if js_match is not None:
            parsed = datetime.strptime(
                f"{js_match['date']} {js_match['offset']}", "%b %d %Y %H:%M:%S %z"
            )
    if parsed is None:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _headers_of(error: BaseException) -> Mapping[str, str]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.headers
    headers = getattr(error, "headers", None)
    if isinstance(headers, httpx.Headers):
        return headers
    if isinstance(headers, dict):
        return httpx.Headers(headers)
    return {}


def _status_of(error: BaseException) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status_code", None)
    return status if isinstance(status, int) else None


def is_rate_limited(error: BaseException) -> bool:
    if isinstance(error, RateLimitedError) or _status_of(error) == 429:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


def _seconds_until(moment: datetime, now: datetime) -> float:
    return max((moment - now).total_seconds(), 0.0)


def rate_limit_wait(error: BaseException, *, now: datetime | None = None) -> float | None:
    """Seconds the provider asked us to wait, or ``None`` if it did not say."""

    if not is_rate_limited(error):
        return None
    current = now or datetime.now(UTC)

    if isinstance(error, RateLimitedError):
        if error.reset_at is not None:
            return _seconds_until(error.reset_at, current)
        if error.retry_after is not None:
            return max(error.retry_after, 0.0)

    message = str(error)
    resets = _RESETS_AT.search(message)
    if resets is not None:
        when = resets["when"].strip()
        moment = (parse_timestamp(when) or parse_timestamp(when.split()[0])) if when else None
        if moment is not None:
            return _seconds_until(moment, current)

    retry_after = _RETRY_AFTER_TEXT.search(message)
    if retry_after is not None:
        return float(retry_after["seconds"])

    header = _headers_of(error).get("retry-after")
    if header:
        header = header.strip()
        try:
            return max(float(header), 0.0)
        except ValueError:
            moment = parse_timestamp(header)
            if moment is not None:
                return _seconds_until(moment, current)
    return None
