"""Upstream data contracts consumed by the ledger engine.

Each record source is a push-based subscription: ``subscribe`` registers
callbacks for one account and returns an unsubscribe callable. Every delivery
carries the full current record list for that account (a snapshot), never a
delta. The opening balance is a one-shot lookup.

``InMemorySource`` and ``StaticOpeningBalance`` are simple implementations
used by tests and the CLI; ``ledger_book.persistence.SqlLedgerSources`` serves
the same contracts from the database.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from decimal import Decimal
from typing import Any, Protocol, TypeAlias

from .api import parse_opening_balance
from .coercion import to_decimal
from .logging_setup import get_logger
from .models import OpeningBalanceUnavailable, RawRecord

Unsubscribe: TypeAlias = Callable[[], None]
OnNext: TypeAlias = Callable[[Sequence[RawRecord]], None]
OnError: TypeAlias = Callable[[BaseException], None]

_logger = get_logger("ledger_book.sources")

# Sales statuses that produce ledger money movement.
ELIGIBLE_SALE_STATUSES: frozenset[str] = frozenset({"completed", "returned", "partial return"})


class RecordSource(Protocol):
    def subscribe(self, account_id: str, on_next: OnNext, on_error: OnError) -> Unsubscribe: ...


class OpeningBalanceSource(Protocol):
    def get(self, account_id: str) -> Decimal: ...


def eligible_sale(raw: Mapping[str, Any]) -> bool:
    """Return True for completed/returned/partially-returned sales with a positive payment."""

    status = str(raw.get("status") or "").strip().lower().replace("-", " ").replace("_", " ")
    if status not in ELIGIBLE_SALE_STATUSES:
        return False
    return to_decimal(raw.get("paymentAmount")) > 0


class InMemorySource:
    """A publishable, per-account snapshot source.

    New subscribers immediately receive the current snapshot for their account
    when one has been published. ``record_filter`` (e.g. :func:`eligible_sale`)
    is applied to every delivery.
    """

    def __init__(
        self,
        snapshots: Mapping[str, Sequence[RawRecord]] | None = None,
        *,
        record_filter: Callable[[RawRecord], bool] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[str, tuple[RawRecord, ...]] = {
            k: tuple(v) for k, v in (snapshots or {}).items()
        }
        self._subscribers: dict[str, list[tuple[OnNext, OnError]]] = {}
        self._filter = record_filter

    def _view(self, records: Sequence[RawRecord]) -> list[RawRecord]:
        if self._filter is None:
            return list(records)
        return [r for r in records if self._filter(r)]

    def subscribe(self, account_id: str, on_next: OnNext, on_error: OnError) -> Unsubscribe:
        entry = (on_next, on_error)
        with self._lock:
            self._subscribers.setdefault(account_id, []).append(entry)
            current = self._snapshots.get(account_id)

        if current is not None:
            on_next(self._view(current))

        def _unsubscribe() -> None:
            with self._lock:
                subs = self._subscribers.get(account_id, [])
                if entry in subs:
                    subs.remove(entry)

        return _unsubscribe

    def publish(self, account_id: str, records: Sequence[RawRecord]) -> None:
        with self._lock:
            self._snapshots[account_id] = tuple(records)
            subs = list(self._subscribers.get(account_id, []))
        view = self._view(records)
        for on_next, _ in subs:
            on_next(view)

    def fail(self, account_id: str, error: BaseException) -> None:
        """Deliver a delivery failure to every subscriber of ``account_id``."""

        with self._lock:
            subs = list(self._subscribers.get(account_id, []))
        _logger.debug("delivering failure to %d subscriber(s): %s", len(subs), error)
        for _, on_error in subs:
            on_error(error)


class StaticOpeningBalance:
    """Opening balances from a mapping; unknown or null entries are unavailable."""

    def __init__(self, balances: Mapping[str, Decimal | int | str | None]) -> None:
        self._balances = dict(balances)

    def get(self, account_id: str) -> Decimal:
        value = self._balances.get(account_id)
        if value is None:
            raise OpeningBalanceUnavailable(f"no opening balance for account {account_id!r}")
        return parse_opening_balance(value)


__all__ = [
    "ELIGIBLE_SALE_STATUSES",
    "InMemorySource",
    "OnError",
    "OnNext",
    "OpeningBalanceSource",
    "RecordSource",
    "StaticOpeningBalance",
    "Unsubscribe",
    "eligible_sale",
]
