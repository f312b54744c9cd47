"""Debounced recomputation driven by source pushes.

Sources push updates independently, so a burst of near-simultaneous pushes
(sales and ledger entries written together, say) would otherwise trigger one
recomputation per push, each against a partly updated set of snapshots.

``Debouncer`` collapses such bursts: every trigger cancels the pending call
and schedules a new one ``window`` seconds out, so only the trailing trigger
fires. ``LedgerBook`` keeps the latest snapshot per source and recomputes the
view through the debouncer.

The scheduler is injectable. The default runs callbacks on
``threading.Timer`` threads; tests pass a manual scheduler and fire pending
callbacks explicitly.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from decimal import Decimal
from functools import partial
from typing import TypeAlias

from .api import (
    SOURCE_KINDS,
    LedgerContext,
    LedgerViewResult,
    SourceSnapshots,
    compute_ledger_view,
    parse_opening_balance,
)
from .config import get_debounce_seconds, get_page_size
from .logging_setup import get_logger
from .models import OpeningBalanceUnavailable, RawRecord, SortDirection
from .projection import LedgerFilters
from .sources import OpeningBalanceSource, RecordSource, Unsubscribe

Cancel: TypeAlias = Callable[[], None]
Scheduler: TypeAlias = Callable[[float, Callable[[], None]], Cancel]

_logger = get_logger("ledger_book.feed")


def thread_timer_scheduler(delay: float, fn: Callable[[], None]) -> Cancel:
    """Run ``fn`` after ``delay`` seconds on a daemon ``threading.Timer``."""

    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer.cancel


class Debouncer:
    """Trailing-edge debounce of a zero-argument callback."""

    def __init__(
        self,
        window: float,
        callback: Callable[[], None],
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        if window < 0:
            raise ValueError("window must be non-negative")
        self._window = window
        self._callback = callback
        self._schedule = scheduler or thread_timer_scheduler
        self._lock = threading.Lock()
        self._generation = 0
        self._cancel: Cancel | None = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._cancel is not None

    def trigger(self) -> None:
        with self._lock:
            if self._cancel is not None:
                self._cancel()
            self._generation += 1
            generation = self._generation
            self._cancel = self._schedule(self._window, partial(self._fire, generation))

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer trigger superseded this one.
            if generation != self._generation or self._cancel is None:
                return
            self._cancel = None
        self._callback()

    def flush(self) -> bool:
        """Run a pending callback now; return whether one was pending."""

        with self._lock:
            if self._cancel is None:
                return False
            self._cancel()
            self._cancel = None
            self._generation += 1
        self._callback()
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._cancel is not None:
                self._cancel()
                self._cancel = None
            self._generation += 1


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LedgerBook:
    """Live ledger view of one account.

    Holds the latest snapshot of every source plus the view state (opening
    balance, sort direction, filters, page) and recomputes the view whenever
    it changes. Source pushes are debounced; view-state changes recompute
    immediately. No view is produced until the opening balance is known.
    ``on_update`` receives each newly computed :class:`LedgerViewResult`, in
    computation order. It runs while the book is locked: it may call back into
    the book from the same thread but must not wait on other threads that do.
    """

    def __init__(
        self,
        account_id: str,
        *,
        on_update: Callable[[LedgerViewResult], None] | None = None,
        debounce_seconds: float | None = None,
        scheduler: Scheduler | None = None,
        sort_direction: SortDirection = "desc",
        filters: LedgerFilters | None = None,
        page_size: int | None = None,
        account_names: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.account_id = account_id
        self._on_update = on_update
        self._lock = threading.RLock()
        self._snapshots = SourceSnapshots()
        self._opening: Decimal | None = None
        self._sort_direction: SortDirection = sort_direction
        self._filters = filters or LedgerFilters()
        self._page = 1
        self._page_size = page_size or get_page_size()
        self._account_names = dict(account_names or {})
        self._clock = clock or _utcnow
        self._view: LedgerViewResult | None = None
        self._unsubscribes: list[Unsubscribe] = []
        window = get_debounce_seconds() if debounce_seconds is None else debounce_seconds
        self._debouncer = Debouncer(window, self.recompute, scheduler=scheduler)

    # ---- state ---------------------------------------------------------------

    @property
    def view(self) -> LedgerViewResult | None:
        """Last computed view, or ``None`` while still loading."""

        with self._lock:
            return self._view

    @property
    def is_loading(self) -> bool:
        return self.view is None

    @property
    def snapshots(self) -> SourceSnapshots:
        with self._lock:
            return self._snapshots

    @property
    def page(self) -> int:
        with self._lock:
            return self._page

    @property
    def filters(self) -> LedgerFilters:
        with self._lock:
            return self._filters

    # ---- inbound source messages ---------------------------------------------

    def push(self, kind: str, records: Sequence[RawRecord]) -> None:
        """Replace the ``kind`` snapshot and schedule a recomputation."""

        with self._lock:
            self._snapshots = self._snapshots.replace(kind, records)
        self._debouncer.trigger()

    def push_error(self, kind: str, error: BaseException) -> None:
        """Record a delivery failure; the last good ``kind`` snapshot stays in use."""

        if kind not in SOURCE_KINDS:
            raise ValueError(f"Unknown source kind: {kind!r}")
        _logger.warning(
            "source %s failed for account %s; keeping last snapshot: %s",
            kind,
            self.account_id,
            error,
        )

    def set_opening_balance(self, value: Decimal | int | str) -> None:
        if value is None:
            raise ValueError("opening balance must not be None")
        with self._lock:
            self._opening = parse_opening_balance(value)
        self._debouncer.trigger()

    # ---- view state ----------------------------------------------------------

    def set_filters(self, filters: LedgerFilters) -> LedgerViewResult | None:
        """Apply new filters; the page resets to the first one."""

        with self._lock:
            self._filters = filters
            self._page = 1
            return self.recompute()

    def set_page(self, page: int) -> LedgerViewResult | None:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValueError("page must be a positive integer")
        with self._lock:
            self._page = page
            return self.recompute()

    def set_sort_direction(self, direction: SortDirection) -> LedgerViewResult | None:
        if direction not in ("asc", "desc"):
            raise ValueError(f"sort_direction must be 'asc' or 'desc', got {direction!r}")
        with self._lock:
            self._sort_direction = direction
            return self.recompute()

    # ---- computation ---------------------------------------------------------

    def flush(self) -> bool:
        """Run a pending debounced recomputation immediately."""

        return self._debouncer.flush()

    def recompute(self) -> LedgerViewResult | None:
        """Recompute from the current snapshots; ``None`` while the opening balance is unknown."""

        with self._lock:
            if self._opening is None:
                _logger.debug("account %s: opening balance pending; deferring", self.account_id)
                return None
            self._debouncer.cancel()
            context = LedgerContext(
                account_id=self.account_id,
                opening_balance=self._opening,
                sources=self._snapshots,
                sort_direction=self._sort_direction,
                filters=self._filters,
                page=self._page,
                page_size=self._page_size,
                now=self._clock(),
                account_names=self._account_names,
            )
            view = compute_ledger_view(context)
            self._view = view
            # Delivered under the lock so consumers see views in computation order.
            if self._on_update is not None:
                self._on_update(view)
        return view

    # ---- subscriptions -------------------------------------------------------

    def attach(
        self,
        *,
        ledger: RecordSource,
        sales: RecordSource,
        expenses: RecordSource,
        returns: RecordSource,
        opening: OpeningBalanceSource,
    ) -> None:
        """Subscribe to all four sources and resolve the opening balance."""

        self.detach()
        sources = {"ledger": ledger, "sales": sales, "expenses": expenses, "returns": returns}
        for kind in SOURCE_KINDS:
            unsubscribe = sources[kind].subscribe(
                self.account_id, partial(self.push, kind), partial(self.push_error, kind)
            )
            self._unsubscribes.append(unsubscribe)
        try:
            balance = opening.get(self.account_id)
        except OpeningBalanceUnavailable as exc:
            _logger.warning("account %s: %s; view stays loading", self.account_id, exc)
            return
        self.set_opening_balance(balance)

    def detach(self) -> None:
        unsubscribes, self._unsubscribes = self._unsubscribes, []
        for unsubscribe in unsubscribes:
            unsubscribe()
        self._debouncer.cancel()


__all__ = [
    "Debouncer",
    "LedgerBook",
    "Scheduler",
    "thread_timer_scheduler",
]
