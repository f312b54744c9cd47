from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ledger_book.projection import (
    LedgerFilters,
    page_count,
    paginate,
    project,
    totals,
)
from tests.helpers.rows import row


def _at(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


def _ids(rows):
    return [r.id for r in rows]


def test_date_range_is_inclusive_of_whole_days():
    rows = [
        row("start", display_time=_at(2024, 1, 1, 0, 0)),
        row("end", display_time=_at(2024, 1, 31, 23, 59, 59)),
        row("after", display_time=_at(2024, 2, 1, 0, 0)),
        row("before", display_time=_at(2023, 12, 31, 23, 59, 59)),
    ]
    f = LedgerFilters(date_from=date(2024, 1, 1), date_to=date(2024, 1, 31))
    assert _ids(project(rows, f)) == ["start", "end"]


def test_date_bounds_follow_filter_timezone():
    eastern = timezone(timedelta(hours=-5))
    # 03:00 UTC on Feb 1 is 22:00 on Jan 31 at UTC-5.
    late = row("late", display_time=_at(2024, 2, 1, 3, 0))
    assert _ids(project([late], LedgerFilters(date_to=date(2024, 1, 31), tz=eastern))) == ["late"]
    assert _ids(project([late], LedgerFilters(date_to=date(2024, 1, 31)))) == []


def test_open_ended_ranges():
    rows = [row("a", day=0), row("b", day=10)]
    assert _ids(project(rows, LedgerFilters(date_from=date(2024, 1, 5)))) == ["b"]
    assert _ids(project(rows, LedgerFilters(date_to=date(2024, 1, 5)))) == ["a"]


def test_inverted_date_range_is_rejected():
    with pytest.raises(ValueError):
        LedgerFilters(date_from=date(2024, 2, 1), date_to=date(2024, 1, 1))


def test_search_is_case_insensitive_across_fields():
    rows = [
        row("a", description="Coffee beans"),
        row("b", customer_name="ACME Corp"),
        row("c", category="Utilities", note="water"),
        row("d", description="Rent"),
    ]
    assert _ids(project(rows, LedgerFilters(search="acme"))) == ["b"]
    assert _ids(project(rows, LedgerFilters(search="  WATER "))) == ["c"]
    assert _ids(project(rows, LedgerFilters(search="e"))) == ["a", "b", "c", "d"]


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        ("All", ["inc", "exp", "xfer", "sale", "ret", "pret"]),
        ("Debit", ["exp", "xfer", "ret"]),
        ("Credit", ["inc", "sale", "pret"]),
        ("Transfer", ["xfer"]),
        ("Expense", ["exp"]),
        ("Income", ["inc"]),
        ("Sale", ["sale"]),
        ("Sales Return", ["ret"]),
        ("Purchase Return", ["pret"]),
    ],
)
def test_type_filter(kind, expected):
    rows = [
        row("inc", type="income", credit=10),
        row("exp", type="expense", debit=5),
        row("xfer", source="transfer", type="transfer_out", debit=7),
        row("sale", source="sale", type="sale", credit=30),
        row("ret", source="sales_return", type="sales_return", debit=4),
        row("pret", type="purchase_return", credit=2),
    ]
    assert _ids(project(rows, LedgerFilters(transaction_type=kind))) == expected


def test_unknown_type_filter_is_rejected():
    with pytest.raises(ValueError):
        LedgerFilters(transaction_type="Refund")


def test_purchases_are_never_shown():
    rows = [row("p", type="purchase", debit=500), row("a", credit=1)]
    assert _ids(project(rows, LedgerFilters())) == ["a"]


def test_purchase_source_tag_excludes_a_row():
    rows = [row("p", source="purchase", type="expense", debit=40), row("a", credit=1)]
    assert _ids(project(rows, LedgerFilters())) == ["a"]


def test_totals_skip_sales_return_credit():
    rows = [
        row("a", credit=200),
        row("b", type="expense", debit="12.50"),
        row("r", source="sales_return", type="sales_return", debit=50, credit=50),
    ]
    assert totals(rows) == (Decimal("62.50"), Decimal(200))
    assert totals([]) == (Decimal(0), Decimal(0))


def test_pagination():
    rows = [row(f"r{i:02d}", day=i) for i in range(30)]
    assert page_count(len(rows), 25) == 2
    assert page_count(0, 25) == 1
    assert _ids(paginate(rows, 1, 25)) == [f"r{i:02d}" for i in range(25)]
    assert _ids(paginate(rows, 2, 25)) == [f"r{i:02d}" for i in range(25, 30)]
    assert paginate(rows, 3, 25) == []


@pytest.mark.parametrize(("page", "size"), [(0, 25), (1, 0)])
def test_pagination_rejects_non_positive_arguments(page, size):
    with pytest.raises(ValueError):
        paginate([], page, size)
