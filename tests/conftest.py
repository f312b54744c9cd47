"""Pytest configuration for test isolation.

Makes the workspace packages importable without an install (``packages/``
for ``ledger_book``, ``libs/db/src`` for ``db`` and the repo root for
``tests.helpers``), and keeps every test hermetic:

- ``LEDGER_BOOK_*`` and ``DATABASE_URL`` environment variables are cleared so
  a developer's shell or ``.env`` cannot change defaults under test;
- the shared SQLAlchemy engine is disposed after each test so every test can
  bind its own SQLite file;
- the package logger is restored after CLI tests configure it, so ``caplog``
  keeps seeing records propagate to the root logger.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PATHS = [_ROOT / "packages", _ROOT / "libs" / "db" / "src", _ROOT]
sys.path[:0] = [str(p) for p in _PATHS if str(p) not in sys.path]

from db.client import reset_engine  # noqa: E402

from ledger_book.logging_setup import reset_logging  # noqa: E402

_ENV_VARS = (
    "DATABASE_URL",
    "LEDGER_BOOK_PAGE_SIZE",
    "LEDGER_BOOK_DEBOUNCE_MS",
    "LEDGER_BOOK_TIMEZONE",
    "LEDGER_BOOK_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_shared_state() -> Iterator[None]:
    yield
    reset_engine()
    reset_logging()
