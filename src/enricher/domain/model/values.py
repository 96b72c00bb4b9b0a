"""Scalar value types shared by claims and graph metadata."""

from __future__ import annotations

import re
from typing import Final

type ClaimValue = str | int | float | bool
type MetadataValue = str | int | float | bool

_NON_ALNUM: Final = re.compile(r"[^0-9A-Za-z]+")


def normalize_value(value: ClaimValue) -> str:
    """Return the grouping key used to decide whether two claims agree.

    Strings are whitespace-collapsed and case-folded; numbers lose cosmetic
    differences such as ``2.0`` vs ``2``; booleans become ``true``/``false``.
    """

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return " ".join(value.split()).casefold()


def normalize_identifier(value: str) -> str:
    """Uppercase alphanumeric form used as the graph's primary identity key."""

    return _NON_ALNUM.sub("", value).upper()


def identity_key_for(name: str) -> str:
    """Uniqueness key for an entity known only by its name.

    Names without any ASCII alphanumerics (e.g. Cyrillic titles) fall back to
    their case-folded, whitespace-collapsed form.
    """

    return normalize_identifier(name) or " ".join(name.split()).casefold()
