"""Filtering, totals and pagination over balanced ledger rows.

Filters never touch balances; they only decide which already-balanced rows
are shown. Stages run in order:

1. purchases are always excluded (they are tracked by the purchasing views);
2. inclusive date range on ``display_time``, with the bounds widened to the
   start and end of their days in the filter's timezone;
3. optional case-insensitive free-text search;
4. optional transaction-type filter.

Totals are computed over exactly the rows that survive filtering.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, tzinfo
from decimal import Decimal

from .coercion import ZERO
from .models import SOURCE_PURCHASE, SOURCE_SALES_RETURN, SOURCE_TRANSFER, LedgerTransaction

TYPE_ALL = "All"

_TYPE_PREDICATES: dict[str, Callable[[LedgerTransaction], bool]] = {
    "Debit": lambda r: r.debit > 0,
    "Credit": lambda r: r.credit > 0,
    "Transfer": lambda r: "transfer" in r.type.lower() or r.source == SOURCE_TRANSFER,
    "Expense": lambda r: r.type == "expense",
    "Income": lambda r: r.type == "income",
    "Sale": lambda r: r.type == "sale",
    "Sales Return": lambda r: r.type == "sales_return" or r.source == SOURCE_SALES_RETURN,
    "Purchase Return": lambda r: r.type == "purchase_return",
}

TRANSACTION_TYPES: tuple[str, ...] = (TYPE_ALL, *_TYPE_PREDICATES)


@dataclass(frozen=True, slots=True)
class LedgerFilters:
    """Display filters for a ledger view.

    ``date_from``/``date_to`` accept ``date`` or ``datetime`` values; either way
    only the calendar day (in ``tz``) matters. ``None`` leaves that side open.
    """

    date_from: date | datetime | None = None
    date_to: date | datetime | None = None
    search: str = ""
    transaction_type: str = TYPE_ALL
    tz: tzinfo = UTC

    def __post_init__(self) -> None:
        if self.transaction_type not in TRANSACTION_TYPES:
            raise ValueError(
                f"Unsupported transaction_type: {self.transaction_type!r}. "
                f"Allowed: {list(TRANSACTION_TYPES)}"
            )
        start, end = self.bounds()
        if start is not None and end is not None and start > end:
            raise ValueError("date_from must not be after date_to")

    def _day(self, value: date | datetime) -> date:
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(self.tz)
            return value.date()
        return value

    def bounds(self) -> tuple[datetime | None, datetime | None]:
        """Return the inclusive ``(start_of_day, end_of_day)`` bounds."""

        start = (
            datetime.combine(self._day(self.date_from), time.min, tzinfo=self.tz)
            if self.date_from is not None
            else None
        )
        end = (
            datetime.combine(self._day(self.date_to), time.max, tzinfo=self.tz)
            if self.date_to is not None
            else None
        )
        return start, end


def is_purchase(row: LedgerTransaction) -> bool:
    """Purchases are tracked elsewhere; a row is one by type or by source tag."""

    return row.type == "purchase" or row.source == SOURCE_PURCHASE


def _matches_search(row: LedgerTransaction, query: str) -> bool:
    fields = (
        row.description,
        row.payment_method,
        row.added_by,
        row.note,
        row.reference_no,
        row.customer_name,
        row.category,
    )
    return any(query in f.lower() for f in fields if f)


def project(
    rows: Iterable[LedgerTransaction], filters: LedgerFilters
) -> list[LedgerTransaction]:
    """Apply ``filters`` to ``rows`` and return the survivors in input order."""

    start, end = filters.bounds()
    query = filters.search.strip().lower()
    type_pred = _TYPE_PREDICATES.get(filters.transaction_type)

    out: list[LedgerTransaction] = []
    for row in rows:
        if is_purchase(row):
            continue
        if start is not None and row.display_time < start:
            continue
        if end is not None and row.display_time > end:
            continue
        if query and not _matches_search(row, query):
            continue
        if type_pred is not None and not type_pred(row):
            continue
        out.append(row)
    return out


def display_credit(row: LedgerTransaction) -> Decimal:
    """Credit shown for ``row``; sales returns never show a credit."""

    if row.source == SOURCE_SALES_RETURN:
        return ZERO
    return row.credit


def totals(rows: Iterable[LedgerTransaction]) -> tuple[Decimal, Decimal]:
    """Return ``(total_debit, total_credit)`` over ``rows``."""

    total_debit = ZERO
    total_credit = ZERO
    for row in rows:
        total_debit += row.debit
        total_credit += display_credit(row)
    return total_debit, total_credit


def page_count(total_rows: int, page_size: int) -> int:
    if page_size < 1:
        raise ValueError("page_size must be a positive integer")
    return max(1, math.ceil(total_rows / page_size))


def paginate(
    rows: Sequence[LedgerTransaction], page: int, page_size: int
) -> list[LedgerTransaction]:
    """Return the 1-based ``page`` of ``rows``; pages past the end are empty."""

    if page < 1:
        raise ValueError("page must be a positive integer")
    if page_size < 1:
        raise ValueError("page_size must be a positive integer")
    start = (page - 1) * page_size
    return list(rows[start : start + page_size])


__all__ = [
    "LedgerFilters",
    "TRANSACTION_TYPES",
    "TYPE_ALL",
    "display_credit",
    "is_purchase",
    "page_count",
    "paginate",
    "project",
    "totals",
]
