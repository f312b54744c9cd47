"""Builders for normalized ``LedgerTransaction`` rows used across tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from ledger_book.models import LedgerTransaction

BASE = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def row(
    id: str,
    *,
    day: int = 0,
    source: str = "account",
    type: str = "income",
    debit: int | str | Decimal = 0,
    credit: int | str | Decimal = 0,
    **kw: Any,
) -> LedgerTransaction:
    """A row dated ``BASE + day`` days; amounts accept ints or strings."""

    when = kw.pop("display_time", BASE + timedelta(days=day))
    return LedgerTransaction(
        id=id,
        date=when,
        display_time=when,
        source=source,  # type: ignore[arg-type]
        type=type,
        debit=Decimal(str(debit)),
        credit=Decimal(str(credit)),
        **kw,
    )
