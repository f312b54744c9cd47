"""CSV export of ledger rows.

One line per row in the order given, followed by a ``Total`` line carrying
the debit and credit totals. Dates render in the supplied timezone.
"""

from __future__ import annotations

import csv
from collections.abc import Sequence
from datetime import UTC, tzinfo
from decimal import Decimal
from typing import TextIO

from .models import LedgerTransaction
from .projection import display_credit

CSV_HEADERS: tuple[str, ...] = (
    "Date",
    "Transaction Time",
    "Description",
    "Payment Method",
    "Payment Details",
    "Note",
    "Added By",
    "Debit",
    "Credit",
    "Balance",
    "Type",
    "Reference No",
    "Category",
    "Source",
)

_TYPE_DISPLAY: dict[str, str] = {
    "income": "Income",
    "sale": "Sale",
    "expense": "Expense",
    "purchase": "Purchase",
    "purchase_return": "Purchase Return",
    "sales_return": "Sales Return",
    "transfer": "Transfer",
    "transfer_in": "Transfer In",
    "transfer_out": "Transfer Out",
    "deposit": "Deposit",
}


def transaction_type_display(value: str | None) -> str:
    """Human label for a transaction type; unknown types pass through."""

    if not value:
        return "Unknown"
    return _TYPE_DISPLAY.get(value.lower(), value)


def _money(d: Decimal) -> str:
    return f"{d:.2f}"


def write_ledger_csv(
    rows: Sequence[LedgerTransaction],
    *,
    total_debit: Decimal,
    total_credit: Decimal,
    stream: TextIO,
    tz: tzinfo = UTC,
) -> int:
    """Write ``rows`` as CSV to ``stream`` and return the number of data lines."""

    if not rows:
        raise ValueError("No transactions to export")

    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        local = row.display_time.astimezone(tz)
        writer.writerow(
            [
                local.strftime("%m/%d/%Y"),
                local.strftime("%H:%M"),
                row.description,
                row.payment_method,
                row.payment_details,
                row.note,
                row.added_by,
                _money(row.debit),
                _money(display_credit(row)),
                _money(row.balance),
                transaction_type_display(row.type),
                row.reference_no,
                row.category,
                row.source or "account",
            ]
        )
    writer.writerow(
        ["Total", "", "", "", "", "", "", _money(total_debit), _money(total_credit), "", "", "", "", ""]
    )
    return len(rows)


__all__ = ["CSV_HEADERS", "transaction_type_display", "write_ledger_csv"]
