"""Environment-driven settings for ``ledger_book``.

Values are read at call time so tests (and long-running hosts) can change the
environment without re-importing the package. Entry points load a local
``.env`` via ``python-dotenv`` before any of these helpers run.

- ``LEDGER_BOOK_PAGE_SIZE``: rows per page (default 25).
- ``LEDGER_BOOK_DEBOUNCE_MS``: quiet window before a recomputation (default 50).
- ``LEDGER_BOOK_TIMEZONE``: IANA zone used for start/end-of-day boundaries and
  CSV formatting (default ``UTC``).
"""

from __future__ import annotations

import os
from datetime import UTC, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .logging_setup import get_logger

DEFAULT_PAGE_SIZE: int = 25
DEFAULT_DEBOUNCE_MS: int = 50

_logger = get_logger("ledger_book.config")


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        _logger.warning("ignoring non-integer %s=%r", name, raw)
        return default
    if value <= 0:
        _logger.warning("ignoring non-positive %s=%r", name, raw)
        return default
    return value


def get_page_size() -> int:
    return _env_positive_int("LEDGER_BOOK_PAGE_SIZE", DEFAULT_PAGE_SIZE)


def get_debounce_seconds() -> float:
    """Return the debounce window in seconds (``LEDGER_BOOK_DEBOUNCE_MS`` / 1000)."""

    return _env_positive_int("LEDGER_BOOK_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS) / 1000.0


def get_timezone() -> tzinfo:
    name = (os.getenv("LEDGER_BOOK_TIMEZONE") or "").strip()
    if not name or name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        _logger.warning("unknown LEDGER_BOOK_TIMEZONE=%r; using UTC", name)
        return UTC


__all__ = [
    "DEFAULT_DEBOUNCE_MS",
    "DEFAULT_PAGE_SIZE",
    "get_debounce_seconds",
    "get_page_size",
    "get_timezone",
]
