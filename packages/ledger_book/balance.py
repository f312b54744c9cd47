"""Running-balance computation over merged ledger rows.

Rows are totally ordered by display time, then ``created_at`` (missing values
sort first), then ``(source, id)`` so identical inputs always produce the same
order. Balances are assigned in a single ascending pass starting from the
opening balance:

- ``sales_return``: ``balance - debit``;
- ``transaction_credit`` (capital entries): ``balance + credit + debit``;
- otherwise: ``balance + credit - debit``.

Descending presentation only reverses the already-balanced rows.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from .coercion import EPOCH_ZERO
from .models import (
    SOURCE_SALES_RETURN,
    AccountState,
    BalancedLedger,
    LedgerTransaction,
    SortDirection,
)


def chronological_key(row: LedgerTransaction) -> tuple[datetime, datetime, str, str]:
    return (row.display_time, row.created_at or EPOCH_ZERO, row.source, row.id)


def balance_delta(row: LedgerTransaction) -> Decimal:
    """Signed effect of ``row`` on the running balance."""

    if row.source == SOURCE_SALES_RETURN:
        return -row.debit
    if row.transaction_credit:
        return row.credit + row.debit
    return row.credit - row.debit


def apply_running_balance(
    rows: Iterable[LedgerTransaction], opening_balance: Decimal
) -> BalancedLedger:
    """Sort ``rows`` ascending and return copies carrying their running balance.

    ``current_balance`` is the balance after the chronologically last row, or
    ``opening_balance`` when there are no rows.
    """

    ordered_rows = sorted(rows, key=chronological_key)
    balance = opening_balance
    out: list[LedgerTransaction] = []
    for row in ordered_rows:
        balance = balance + balance_delta(row)
        out.append(replace(row, balance=balance))
    return BalancedLedger(
        rows=tuple(out),
        account=AccountState(opening_balance=opening_balance, current_balance=balance),
    )


def ordered(
    rows: Sequence[LedgerTransaction], direction: SortDirection
) -> list[LedgerTransaction]:
    """Return ascending ``rows`` in presentation order for ``direction``."""

    if direction == "desc":
        return list(reversed(rows))
    if direction == "asc":
        return list(rows)
    raise ValueError(f"unknown sort direction: {direction!r}")


__all__ = [
    "apply_running_balance",
    "balance_delta",
    "chronological_key",
    "ordered",
]
