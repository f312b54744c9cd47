"""Lenient value coercion shared by the input models and normalizers.

Upstream documents are loosely typed: amounts arrive as numbers, numeric
strings, ``None`` or garbage; dates arrive as ``datetime``/``date`` objects,
ISO strings, epoch milliseconds or document-store timestamp mappings
(``{"seconds": ..., "nanoseconds": ...}``). Every helper here recovers locally
instead of raising: malformed amounts become ``Decimal(0)`` and unparsable
dates become ``None`` so the caller can apply its fallback chain.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal(0)

# "Time zero" sort value for rows without a creation timestamp.
EPOCH_ZERO = datetime(1970, 1, 1, tzinfo=UTC)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})


def to_decimal(raw: Any) -> Decimal:
    """Coerce ``raw`` to a finite ``Decimal``; anything else becomes ``0``."""

    if raw is None or isinstance(raw, bool):
        return ZERO
    if isinstance(raw, Decimal):
        d = raw
    elif isinstance(raw, int):
        d = Decimal(raw)
    elif isinstance(raw, float):
        d = Decimal(repr(raw))
    elif isinstance(raw, str):
        s = raw.strip().replace(",", "")
        if not s:
            return ZERO
        try:
            d = Decimal(s)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    # NaN and infinities are treated as malformed input.
    if not d.is_finite():
        return ZERO
    return d


def to_optional_decimal(raw: Any) -> Decimal | None:
    if raw is None:
        return None
    return to_decimal(raw)


def _aware(dt: datetime) -> datetime:
    # Naive values are read as UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def to_datetime(raw: Any) -> datetime | None:
    """Best-effort conversion to an aware ``datetime``; ``None`` when unparsable."""

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return _aware(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=UTC)
    if isinstance(raw, (int, float)):
        # Numbers are epoch milliseconds, as written by the web client.
        try:
            return datetime.fromtimestamp(raw / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(raw, Mapping):
        seconds = raw.get("seconds", raw.get("_seconds"))
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
            return None
        nanos = raw.get("nanoseconds", raw.get("_nanoseconds")) or 0
        if isinstance(nanos, bool) or not isinstance(nanos, (int, float)):
            nanos = 0
        try:
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return None
        try:
            return _aware(datetime.fromisoformat(s))
        except ValueError:
            return None
    return None


def coerce_text(raw: Any) -> str:
    """Return a display string for ``raw``.

    Mappings are treated as user references and resolved to their
    ``displayName``/``name``/``email``; other non-string scalars are
    stringified.
    """

    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, Mapping):
        for key in ("displayName", "name", "email"):
            val = raw.get(key)
            if isinstance(val, str) and val.strip():
                return val
        return ""
    if isinstance(raw, bool):
        return ""
    if isinstance(raw, (int, float, Decimal)):
        return str(raw)
    return ""


def coerce_flag(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw != 0
    if isinstance(raw, str):
        return raw.strip().lower() in _TRUE_STRINGS
    return False


def first_text(*values: str) -> str:
    """Return the first non-blank string from ``values`` (or ``""``)."""

    for v in values:
        if v and v.strip():
            return v
    return ""


__all__ = [
    "EPOCH_ZERO",
    "ZERO",
    "coerce_flag",
    "coerce_text",
    "first_text",
    "to_datetime",
    "to_decimal",
    "to_optional_decimal",
]
