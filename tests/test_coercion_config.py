from __future__ import annotations

import io
import logging
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from ledger_book.coercion import coerce_flag, coerce_text, to_datetime, to_decimal
from ledger_book.config import get_debounce_seconds, get_page_size, get_timezone
from ledger_book.logging_setup import configure_logging, get_logger, reset_logging, resolve_level


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1,200.50", Decimal("1200.50")),
        (0.1, Decimal("0.1")),
        (7, Decimal(7)),
        ("  ", Decimal(0)),
        ("abc", Decimal(0)),
        (None, Decimal(0)),
        (True, Decimal(0)),
        ("NaN", Decimal(0)),
        (Decimal("Infinity"), Decimal(0)),
        ([1, 2], Decimal(0)),
    ],
)
def test_to_decimal_is_lenient(raw, expected):
    assert to_decimal(raw) == expected


def test_to_datetime_accepts_upstream_shapes():
    epoch = datetime(1970, 1, 1, tzinfo=UTC)
    assert to_datetime({"seconds": 1704067200, "nanoseconds": 0}) == datetime(
        2024, 1, 1, tzinfo=UTC
    )
    assert to_datetime(0) == epoch  # epoch milliseconds
    assert to_datetime(1704067200000) == datetime(2024, 1, 1, tzinfo=UTC)
    assert to_datetime("2024-03-01T10:00:00") == datetime(2024, 3, 1, 10, tzinfo=UTC)
    assert to_datetime("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, tzinfo=UTC)
    assert to_datetime(date(2024, 3, 1)) == datetime(2024, 3, 1, tzinfo=UTC)


@pytest.mark.parametrize("raw", ["garbage", "", None, True, {"seconds": "x"}, [2024]])
def test_to_datetime_returns_none_when_unparsable(raw):
    assert to_datetime(raw) is None


def test_coerce_text_resolves_user_references():
    assert coerce_text({"displayName": "Ann", "email": "a@x"}) == "Ann"
    assert coerce_text({"email": "a@x"}) == "a@x"
    assert coerce_text({}) == ""
    assert coerce_text(42) == "42"
    assert coerce_text(None) == ""


def test_coerce_flag():
    assert coerce_flag(True) is True
    assert coerce_flag("yes") is True
    assert coerce_flag(1) is True
    assert coerce_flag("no") is False
    assert coerce_flag(None) is False


# ---- Configuration -----------------------------------------------------------


def test_config_defaults():
    assert get_page_size() == 25
    assert get_debounce_seconds() == pytest.approx(0.05)
    assert get_timezone() is UTC


def test_config_reads_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LEDGER_BOOK_PAGE_SIZE", "10")
    monkeypatch.setenv("LEDGER_BOOK_DEBOUNCE_MS", "200")
    assert get_page_size() == 10
    assert get_debounce_seconds() == pytest.approx(0.2)


@pytest.mark.parametrize("value", ["abc", "0", "-3"])
def test_config_invalid_values_fall_back(monkeypatch: pytest.MonkeyPatch, value: str):
    monkeypatch.setenv("LEDGER_BOOK_PAGE_SIZE", value)
    assert get_page_size() == 25


def test_unknown_timezone_falls_back_to_utc(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LEDGER_BOOK_TIMEZONE", "Nowhere/Nope")
    assert get_timezone() is UTC


# ---- Logging -----------------------------------------------------------------


@pytest.mark.parametrize(
    ("level", "env", "expected"),
    [
        ("debug", None, logging.DEBUG),
        (None, "WARNING", logging.WARNING),
        (None, "15", 15),
        ("nonsense", None, logging.INFO),
        (None, None, logging.INFO),
    ],
)
def test_resolve_level(monkeypatch: pytest.MonkeyPatch, level, env, expected):
    if env is not None:
        monkeypatch.setenv("LEDGER_BOOK_LOG_LEVEL", env)
    assert resolve_level(level) == expected


def test_configure_logging_installs_one_handler():
    buf = io.StringIO()
    root = configure_logging("INFO", fmt="%(levelname)s %(message)s", stream=buf)
    configure_logging("DEBUG", stream=io.StringIO())
    get_logger("ledger_book.test").info("hello %s", "there")
    get_logger("ledger_book.test").debug("hidden")

    assert root.propagate is False
    assert len(root.handlers) == 1
    assert buf.getvalue() == "INFO hello there\n"

    reset_logging()
    assert root.handlers == []
    assert root.propagate is True
