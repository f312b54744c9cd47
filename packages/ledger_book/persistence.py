# ruff: noqa: I001
"""Persistence integration for ledger_book.

Raw upstream documents are stored verbatim in the shared database owned by
``libs/db`` (``db.models.ledger``) and read back as per-account source
snapshots. Sessions come from ``db.client``.

Scope:
- Upsert accounts into ``lb_accounts`` (name, number, type, opening balance).
- Upsert raw records into ``lb_source_records`` keyed by
  ``(account_id, collection, external_id)``.
- Load snapshots and opening balances; serve them through the source
  contracts (:class:`SqlLedgerSources`).
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.ledger import LB_COLLECTIONS, LbAccount, LbSourceRecord

from .api import SOURCE_KINDS, SourceSnapshots, parse_opening_balance
from .logging_setup import get_logger
from .models import OpeningBalanceUnavailable, RawRecord
from .sources import InMemorySource, RecordSource, eligible_sale

_logger = get_logger("ledger_book.persistence")


def _insert_for(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Unsupported database dialect for upserts: {dialect}")


def _jsonable(raw: Mapping[str, Any]) -> dict[str, Any]:
    # Datetimes and Decimals become strings; the normalizers parse both back.
    return json.loads(json.dumps(dict(raw), default=str))


def compute_fingerprint(raw: Mapping[str, Any]) -> str:
    """Stable SHA-256 over a record's JSON form, used when it carries no ``id``."""

    data = json.dumps(_jsonable(raw), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _external_id(raw: Mapping[str, Any]) -> str:
    rid = raw.get("id")
    if rid is not None and str(rid).strip():
        return str(rid).strip()
    return compute_fingerprint(raw)


def upsert_account(
    session: Session,
    *,
    account_id: str,
    name: str,
    account_number: str | None = None,
    account_type: str | None = None,
    opening_balance: Decimal | int | str | None = None,
) -> None:
    """Insert or update one row in ``lb_accounts``."""

    if not account_id or not str(account_id).strip():
        raise ValueError("account_id must be a non-empty string")
    balance = None if opening_balance is None else parse_opening_balance(opening_balance)
    insert = _insert_for(session)
    values = {
        "id": account_id,
        "name": name or account_id,
        "account_number": account_number,
        "account_type": account_type,
        "opening_balance": balance,
    }
    stmt = insert(LbAccount).values(values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[LbAccount.id],
        set_={
            "name": stmt.excluded.name,
            "account_number": stmt.excluded.account_number,
            "account_type": stmt.excluded.account_type,
            "opening_balance": stmt.excluded.opening_balance,
            "updated_at": func.now(),
        },
    )
    session.execute(stmt)


def upsert_source_records(
    session: Session,
    *,
    account_id: str,
    collection: str,
    records: Iterable[RawRecord],
) -> int:
    """Insert or update raw records of one collection; return how many were written.

    Records are keyed by their ``id`` (or a content fingerprint when absent).
    Within one call, the last record with a given key wins.
    """

    if collection not in LB_COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection!r}. Allowed: {list(LB_COLLECTIONS)}")

    payloads: dict[str, dict[str, Any]] = {}
    for raw in records:
        if not isinstance(raw, Mapping):
            _logger.warning("skipping non-mapping %s record: %r", collection, raw)
            continue
        eid = _external_id(raw)
        payloads[eid] = {
            "account_id": account_id,
            "collection": collection,
            "external_id": eid,
            "raw_record": _jsonable(raw),
        }
    if not payloads:
        return 0

    insert = _insert_for(session)
    stmt = insert(LbSourceRecord).values(list(payloads.values()))
    stmt = stmt.on_conflict_do_update(
        index_elements=[
            LbSourceRecord.account_id,
            LbSourceRecord.collection,
            LbSourceRecord.external_id,
        ],
        set_={
            "raw_record": stmt.excluded.raw_record,
            "updated_at": func.now(),
        },
    )
    session.execute(stmt)
    return len(payloads)


def load_collection(session: Session, account_id: str, collection: str) -> list[dict[str, Any]]:
    rows = session.execute(
        select(LbSourceRecord.raw_record)
        .where(
            LbSourceRecord.account_id == account_id,
            LbSourceRecord.collection == collection,
        )
        .order_by(LbSourceRecord.id)
    ).scalars()
    return [dict(r) for r in rows]


def load_snapshot(session: Session, account_id: str) -> SourceSnapshots:
    """Read every collection of ``account_id``; sales are limited to eligible ones."""

    data = {kind: load_collection(session, account_id, kind) for kind in SOURCE_KINDS}
    data["sales"] = [r for r in data["sales"] if eligible_sale(r)]
    return SourceSnapshots.from_mapping(data)


def get_opening_balance(session: Session, account_id: str) -> Decimal:
    account = session.get(LbAccount, account_id)
    if account is None:
        raise OpeningBalanceUnavailable(f"account {account_id!r} not found")
    if account.opening_balance is None:
        raise OpeningBalanceUnavailable(f"account {account_id!r} has no opening balance")
    return Decimal(account.opening_balance)


def load_account_names(session: Session) -> dict[str, str]:
    """Map of account id to display name, used for transfer descriptions."""

    rows = session.execute(select(LbAccount.id, LbAccount.name)).all()
    return {aid: name for aid, name in rows}


# ---- Source contracts backed by the database ---------------------------------


class _SqlOpeningBalance:
    def __init__(self, database_url: str | None) -> None:
        self._database_url = database_url

    def get(self, account_id: str) -> Decimal:
        with session_scope(database_url=self._database_url) as session:
            return get_opening_balance(session, account_id)


class SqlLedgerSources:
    """Serve the four record sources and the opening balance from the database.

    The database has no change feed, so deliveries happen on :meth:`refresh`:
    it re-reads an account's records and pushes a fresh snapshot to every
    subscriber. A failed read is delivered to subscribers' error callbacks;
    their previous snapshots stay in use.

    Usage
    -----
    sources = SqlLedgerSources(database_url=url)
    sources.refresh("acc-1")
    book.attach(**sources.contracts())
    """

    def __init__(self, *, database_url: str | None = None) -> None:
        self._database_url = database_url
        self._sources = {kind: InMemorySource() for kind in SOURCE_KINDS}
        self.opening = _SqlOpeningBalance(database_url)

    @property
    def ledger(self) -> RecordSource:
        return self._sources["ledger"]

    @property
    def sales(self) -> RecordSource:
        return self._sources["sales"]

    @property
    def expenses(self) -> RecordSource:
        return self._sources["expenses"]

    @property
    def returns(self) -> RecordSource:
        return self._sources["returns"]

    def contracts(self) -> dict[str, Any]:
        """Keyword arguments for :meth:`ledger_book.feed.LedgerBook.attach`."""

        return {
            "ledger": self.ledger,
            "sales": self.sales,
            "expenses": self.expenses,
            "returns": self.returns,
            "opening": self.opening,
        }

    def account_names(self) -> dict[str, str]:
        with session_scope(database_url=self._database_url) as session:
            return load_account_names(session)

    def refresh(self, account_id: str) -> bool:
        """Re-read ``account_id`` and publish; return False when the read failed."""

        try:
            with session_scope(database_url=self._database_url) as session:
                snapshot = load_snapshot(session, account_id)
        except SQLAlchemyError as exc:
            _logger.warning("refresh of account %s failed: %s", account_id, exc)
            for source in self._sources.values():
                source.fail(account_id, exc)
            return False
        for kind in SOURCE_KINDS:
            self._sources[kind].publish(account_id, getattr(snapshot, kind))
        return True


__all__ = [
    "SqlLedgerSources",
    "compute_fingerprint",
    "get_opening_balance",
    "load_account_names",
    "load_collection",
    "load_snapshot",
    "upsert_account",
    "upsert_source_records",
]
