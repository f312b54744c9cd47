"""Duplicate suppression across ledger sources.

A sale can reach the ledger twice: as an entry written into the manual ledger
collection when it was paid, and as the sales document itself, which the
engine synthesizes into a credit row. This module drops the synthesized row
whenever the manual ledger already references the sale.

Matching is identifier-set based rather than a single join key because the
two representations cross-reference each other inconsistently:

- recorded side (manual ledger rows): ``related_doc_id``, ``sale_id``,
  ``reference_no`` and ``payment_details``; for hyphenated references also the
  text before the first hyphen and the text before the last hyphen, so a
  split-payment reference such as ``"INV-0042-1"`` covers ``"INV-0042"``;
- candidate side (sale rows): ``id``, ``related_doc_id``, ``invoice_no`` and
  ``payment_details``.

The hyphen prefixes are a heuristic over the ``{base}-{suffix}`` reference
convention, not a verified join. Blank identifiers never participate.
"""

from __future__ import annotations

from collections.abc import Iterable

from .logging_setup import get_logger
from .models import LedgerTransaction

_logger = get_logger("ledger_book.duplicates")


def _hyphen_prefixes(value: str) -> tuple[str, ...]:
    if "-" not in value:
        return ()
    first = value.split("-", 1)[0].strip()
    last = value.rsplit("-", 1)[0].strip()
    return tuple(p for p in (first, last) if p)


def recorded_identifiers(ledger_rows: Iterable[LedgerTransaction]) -> set[str]:
    """Collect every identifier under which the manual ledger already records a document."""

    seen: set[str] = set()
    for row in ledger_rows:
        for value in (row.related_doc_id, row.sale_id, row.reference_no, row.payment_details):
            v = value.strip()
            if v:
                seen.add(v)
        for value in (row.reference_no, row.payment_details):
            seen.update(_hyphen_prefixes(value.strip()))
    return seen


def _candidate_identifiers(row: LedgerTransaction) -> tuple[str, ...]:
    values = (row.id, row.related_doc_id, row.invoice_no, row.payment_details)
    return tuple(v.strip() for v in values if v and v.strip())


def exclude_recorded_sales(
    ledger_rows: Iterable[LedgerTransaction],
    sale_rows: Iterable[LedgerTransaction],
) -> list[LedgerTransaction]:
    """Return ``sale_rows`` minus the sales already represented in ``ledger_rows``."""

    recorded = recorded_identifiers(ledger_rows)
    kept: list[LedgerTransaction] = []
    for row in sale_rows:
        if any(ident in recorded for ident in _candidate_identifiers(row)):
            _logger.debug("sale %r already recorded in the ledger; skipping", row.id)
            continue
        kept.append(row)
    return kept


def unique_by_source_id(rows: Iterable[LedgerTransaction]) -> list[LedgerTransaction]:
    """Keep the first row for each ``(source, id)`` pair, preserving order.

    Rows without an id cannot be matched and are always kept.
    """

    seen: set[tuple[str, str]] = set()
    out: list[LedgerTransaction] = []
    for row in rows:
        if row.id:
            key = (row.source, row.id)
            if key in seen:
                continue
            seen.add(key)
        out.append(row)
    return out


__all__ = [
    "exclude_recorded_sales",
    "recorded_identifiers",
    "unique_by_source_id",
]
