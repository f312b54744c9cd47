"""Public computation boundary for the ``ledger_book`` package.

:func:`compute_ledger_view` is a pure function of an immutable
:class:`LedgerContext`: the opening balance, the latest snapshot of every
source, sort direction, filters and page. It runs the whole pipeline:

normalize -> drop sales already in the manual ledger -> merge (unique per
``(source, id)``, purchases excluded) -> running balance (ascending) ->
presentation order -> filters -> totals -> page.

Record-level problems are absorbed during normalization; the function does
not raise for them. An invalid context (e.g., no opening balance) is
rejected when the context is constructed.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from .balance import apply_running_balance, ordered
from .config import get_page_size
from .duplicates import exclude_recorded_sales, unique_by_source_id
from .logging_setup import get_logger
from .models import LedgerTransaction, RawRecord, SortDirection
from .normalizers import (
    normalize_batch,
    normalize_expense,
    normalize_ledger_record,
    normalize_sale,
    normalize_sales_return,
)
from .projection import LedgerFilters, is_purchase, page_count, paginate, project, totals

_logger = get_logger("ledger_book.api")

SOURCE_KINDS: tuple[str, ...] = ("ledger", "sales", "expenses", "returns")
"""Snapshot slots, one per upstream source contract."""


@dataclass(frozen=True, slots=True)
class SourceSnapshots:
    """Latest known record list of each upstream source."""

    ledger: tuple[RawRecord, ...] = ()
    sales: tuple[RawRecord, ...] = ()
    expenses: tuple[RawRecord, ...] = ()
    returns: tuple[RawRecord, ...] = ()

    def __post_init__(self) -> None:
        for kind in SOURCE_KINDS:
            object.__setattr__(self, kind, tuple(getattr(self, kind) or ()))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Sequence[RawRecord] | None]) -> SourceSnapshots:
        unknown = set(data) - set(SOURCE_KINDS)
        if unknown:
            raise ValueError(f"Unknown source kinds: {sorted(unknown)}")
        return cls(**{k: tuple(data.get(k) or ()) for k in SOURCE_KINDS})

    def replace(self, kind: str, records: Sequence[RawRecord]) -> SourceSnapshots:
        if kind not in SOURCE_KINDS:
            raise ValueError(f"Unknown source kind: {kind!r}")
        values = {k: getattr(self, k) for k in SOURCE_KINDS}
        values[kind] = tuple(records)
        return SourceSnapshots(**values)


def parse_opening_balance(value: Any) -> Decimal:
    """Strictly parse an opening balance; raise ``ValueError`` for anything but a finite number.

    Unlike record amounts, a malformed opening balance must not read as 0.
    """

    if isinstance(value, bool) or not isinstance(value, (Decimal, int, float, str)):
        raise ValueError(f"opening_balance must be numeric, got {value!r}")
    try:
        if isinstance(value, Decimal):
            d = value
        elif isinstance(value, float):
            d = Decimal(repr(value))
        else:
            d = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"opening_balance must be numeric, got {value!r}") from exc
    if not d.is_finite():
        raise ValueError(f"opening_balance must be finite, got {value!r}")
    return d


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class LedgerContext:
    """Everything one computation pass needs, captured immutably.

    ``now`` is the fallback display time for records carrying no timestamp at
    all; it is fixed per context so repeated computations are identical.
    """

    account_id: str
    opening_balance: Decimal
    sources: SourceSnapshots = field(default_factory=SourceSnapshots)
    sort_direction: SortDirection = "desc"
    filters: LedgerFilters = field(default_factory=LedgerFilters)
    page: int = 1
    page_size: int = field(default_factory=get_page_size)
    now: datetime = field(default_factory=_utcnow)
    account_names: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.opening_balance is None:
            raise ValueError("opening_balance is required before computing a ledger view")
        object.__setattr__(self, "opening_balance", parse_opening_balance(self.opening_balance))
        if self.sort_direction not in ("asc", "desc"):
            raise ValueError(f"sort_direction must be 'asc' or 'desc', got {self.sort_direction!r}")
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise ValueError("page must be a positive integer")
        if (
            isinstance(self.page_size, bool)
            or not isinstance(self.page_size, int)
            or self.page_size < 1
        ):
            raise ValueError("page_size must be a positive integer")
        if self.now.tzinfo is None:
            object.__setattr__(self, "now", self.now.replace(tzinfo=UTC))


@dataclass(frozen=True, slots=True)
class LedgerViewResult:
    """Computed ledger view.

    ``rows`` holds every filtered row in presentation order; ``page_rows`` is
    the requested page of it. Totals cover ``rows``. ``current_balance`` is
    the balance after the chronologically last row before filtering.
    """

    rows: tuple[LedgerTransaction, ...]
    page_rows: tuple[LedgerTransaction, ...]
    total_debit: Decimal
    total_credit: Decimal
    opening_balance: Decimal
    current_balance: Decimal
    page: int
    page_size: int
    page_count: int

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows


def merge_sources(context: LedgerContext) -> list[LedgerTransaction]:
    """Normalize every snapshot and merge them into one de-duplicated row list."""

    src = context.sources
    ledger_rows = normalize_batch(
        src.ledger,
        normalize_ledger_record,
        account_id=context.account_id,
        now=context.now,
        account_names=context.account_names,
    )
    sale_rows = normalize_batch(
        src.sales, normalize_sale, account_id=context.account_id, now=context.now
    )
    expense_rows = normalize_batch(src.expenses, normalize_expense, now=context.now)
    return_rows = normalize_batch(src.returns, normalize_sales_return, now=context.now)

    sale_rows = exclude_recorded_sales(ledger_rows, sale_rows)
    merged = unique_by_source_id([*ledger_rows, *sale_rows, *expense_rows, *return_rows])
    return [row for row in merged if not is_purchase(row)]


def compute_ledger_view(context: LedgerContext) -> LedgerViewResult:
    """Compute the balanced, filtered and paginated ledger view for ``context``."""

    merged = merge_sources(context)
    balanced = apply_running_balance(merged, context.opening_balance)
    presented = ordered(balanced.rows, context.sort_direction)
    filtered = project(presented, context.filters)
    total_debit, total_credit = totals(filtered)
    pages = page_count(len(filtered), context.page_size)

    _logger.debug(
        "account %s: %d merged row(s), %d after filters, current balance %s",
        context.account_id,
        len(merged),
        len(filtered),
        balanced.current_balance,
    )

    return LedgerViewResult(
        rows=tuple(filtered),
        page_rows=tuple(paginate(filtered, context.page, context.page_size)),
        total_debit=total_debit,
        total_credit=total_credit,
        opening_balance=context.opening_balance,
        current_balance=balanced.current_balance,
        page=context.page,
        page_size=context.page_size,
        page_count=pages,
    )


class LedgerView:
    """Convenience facade mirroring the ``LedgerView.compute`` contract.

    Usage
    -----
    result = LedgerView.compute(
        {"ledger": [...], "sales": [...]}, Decimal("1000"), "desc", LedgerFilters(), 1,
        account_id="acc-1",
    )
    """

    @staticmethod
    def compute(
        sources: SourceSnapshots | Mapping[str, Sequence[RawRecord] | None],
        opening_balance: Decimal | int | str,
        sort_direction: SortDirection = "desc",
        filters: LedgerFilters | None = None,
        page: int = 1,
        *,
        account_id: str = "",
        page_size: int | None = None,
        now: datetime | None = None,
        account_names: Mapping[str, str] | None = None,
    ) -> LedgerViewResult:
        snapshots = (
            sources if isinstance(sources, SourceSnapshots) else SourceSnapshots.from_mapping(sources)
        )
        extra: dict[str, Any] = {}
        if page_size is not None:
            extra["page_size"] = page_size
        if now is not None:
            extra["now"] = now
        if account_names is not None:
            extra["account_names"] = dict(account_names)
        context = LedgerContext(
            account_id=account_id,
            opening_balance=opening_balance,  # type: ignore[arg-type]
            sources=snapshots,
            sort_direction=sort_direction,
            filters=filters or LedgerFilters(),
            page=page,
            **extra,
        )
        return compute_ledger_view(context)


__all__ = [
    "LedgerContext",
    "LedgerView",
    "LedgerViewResult",
    "SOURCE_KINDS",
    "SourceSnapshots",
    "compute_ledger_view",
    "merge_sources",
    "parse_opening_balance",
]
