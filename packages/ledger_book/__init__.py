"""Public interface for the ``ledger_book`` package.

Re-exports the computation boundary, the live feed, the source contracts and
the public models as the stable import surface. Database-backed sources live
in ``ledger_book.persistence`` and are imported explicitly.
"""

from .api import (
    SOURCE_KINDS,
    LedgerContext,
    LedgerView,
    LedgerViewResult,
    SourceSnapshots,
    compute_ledger_view,
)
from .feed import Debouncer, LedgerBook
from .models import (
    AccountState,
    BalancedLedger,
    LedgerSource,
    LedgerTransaction,
    OpeningBalanceUnavailable,
    SortDirection,
)
from .projection import TRANSACTION_TYPES, LedgerFilters
from .sources import (
    InMemorySource,
    OpeningBalanceSource,
    RecordSource,
    StaticOpeningBalance,
    eligible_sale,
)

__all__ = [
    # API
    "SOURCE_KINDS",
    "LedgerContext",
    "LedgerView",
    "LedgerViewResult",
    "SourceSnapshots",
    "compute_ledger_view",
    # Feed
    "Debouncer",
    "LedgerBook",
    # Models
    "AccountState",
    "BalancedLedger",
    "LedgerSource",
    "LedgerTransaction",
    "OpeningBalanceUnavailable",
    "SortDirection",
    # Projection
    "LedgerFilters",
    "TRANSACTION_TYPES",
    # Sources
    "InMemorySource",
    "OpeningBalanceSource",
    "RecordSource",
    "StaticOpeningBalance",
    "eligible_sale",
]
