# ruff: noqa: I001
"""CLI for the ``ledger_book`` package.

Two commands:

- ``view ACCOUNT_ID``: compute and print an account's ledger view, read either
  from a JSON snapshot file (``--snapshot``) or from the database. ``--csv``
  writes the filtered rows instead of printing them.
- ``import SNAPSHOT``: load a JSON snapshot into the database.

A snapshot file looks like::

    {"account": {"id": "acc-1", "name": "Cash", "openingBalance": 1000},
     "ledger": [...], "sales": [...], "expenses": [...], "returns": [...]}

Environment variables are loaded from a local ``.env`` using
``python-dotenv``. Computation lives in ``ledger_book.api`` and
``ledger_book.feed``.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

import typer
from dotenv import load_dotenv

from .api import SOURCE_KINDS, LedgerViewResult
from .config import get_timezone
from .logging_setup import configure_logging, get_logger
from .models import LedgerTransaction, OpeningBalanceUnavailable
from .projection import TRANSACTION_TYPES, TYPE_ALL, LedgerFilters

_logger = get_logger("ledger_book.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _read_snapshot(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        doc = json.load(f)
    if not isinstance(doc, Mapping):
        raise ValueError("snapshot must be a JSON object")
    unknown = set(doc) - {"account", *SOURCE_KINDS}
    if unknown:
        raise ValueError(f"snapshot has unknown keys: {sorted(unknown)}")
    for kind in SOURCE_KINDS:
        if not isinstance(doc.get(kind) or [], list):
            raise ValueError(f"snapshot key {kind!r} must be a list")
    return dict(doc)


def _account_of(doc: Mapping[str, Any]) -> dict[str, Any]:
    account = doc.get("account") or {}
    if not isinstance(account, Mapping):
        raise ValueError("snapshot 'account' must be an object")
    return dict(account)


def _format_row(row: LedgerTransaction) -> str:
    when = row.display_time.astimezone(get_timezone()).strftime("%Y-%m-%d %H:%M")
    return "\t".join(
        [
            when,
            row.description,
            f"{row.debit:.2f}",
            f"{row.credit:.2f}",
            f"{row.balance:.2f}",
            row.type,
            row.source,
        ]
    )


def _print_view(account_id: str, view: LedgerViewResult) -> None:
    print(
        f"Account {account_id}: opening {view.opening_balance:.2f}, "
        f"current {view.current_balance:.2f}"
    )
    if view.is_empty:
        print("No transactions found.")
    for row in view.page_rows:
        print(_format_row(row))
    print(f"Total\t{view.total_debit:.2f}\t{view.total_credit:.2f}")
    print(f"Page {view.page} of {view.page_count} ({view.total_rows} row(s))")


def _sources_for_file(doc: Mapping[str, Any], account_id: str):
    from .sources import InMemorySource, StaticOpeningBalance, eligible_sale

    account = _account_of(doc)
    if account.get("id") and str(account["id"]) != account_id:
        raise ValueError(
            f"snapshot is for account {account['id']!r}, not {account_id!r}"
        )
    contracts: dict[str, Any] = {}
    for kind in SOURCE_KINDS:
        source = InMemorySource(record_filter=eligible_sale if kind == "sales" else None)
        source.publish(account_id, list(doc.get(kind) or []))
        contracts[kind] = source
    contracts["opening"] = StaticOpeningBalance({account_id: account.get("openingBalance")})
    names = {account_id: str(account["name"])} if account.get("name") else {}
    return contracts, names


def cmd_view(
    account_id: str,
    *,
    snapshot: Path | None,
    database_url: str | None,
    filters: LedgerFilters,
    page: int,
    page_size: int | None,
    order: str,
    csv_path: Path | None,
) -> int:
    """Compute an account's ledger view and print it (or export it as CSV)."""

    from .feed import LedgerBook

    try:
        if snapshot is not None:
            contracts, names = _sources_for_file(_read_snapshot(snapshot), account_id)
        else:
            from .persistence import SqlLedgerSources

            sql_sources = SqlLedgerSources(database_url=database_url)
            if not sql_sources.refresh(account_id):
                print("Error: failed to read ledger sources from the database", file=sys.stderr)
                return 1
            contracts, names = sql_sources.contracts(), sql_sources.account_names()
    except FileNotFoundError:
        print(f"Error: File not found: {snapshot}", file=sys.stderr)
        return 1
    except (ValueError, json.JSONDecodeError) as e:
        print(f"Error: invalid snapshot: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: failed to load ledger sources: {e}", file=sys.stderr)
        return 1

    book = LedgerBook(
        account_id,
        sort_direction=order,  # type: ignore[arg-type]
        filters=filters,
        page_size=page_size,
        account_names=names,
    )
    try:
        book.attach(**contracts)
        view = book.set_page(page)
    except (ValueError, OpeningBalanceUnavailable) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        book.detach()

    if view is None:
        print(f"Error: opening balance unavailable for account {account_id}", file=sys.stderr)
        return 1

    if csv_path is not None:
        from .export import write_ledger_csv

        if view.is_empty:
            print("Error: No transactions to export", file=sys.stderr)
            return 1
        try:
            if str(csv_path) == "-":
                n = write_ledger_csv(
                    view.rows,
                    total_debit=view.total_debit,
                    total_credit=view.total_credit,
                    stream=sys.stdout,
                    tz=filters.tz,
                )
            else:
                with csv_path.open("w", encoding="utf-8", newline="") as f:
                    n = write_ledger_csv(
                        view.rows,
                        total_debit=view.total_debit,
                        total_credit=view.total_credit,
                        stream=f,
                        tz=filters.tz,
                    )
        except OSError as e:
            print(f"Error: failed to write CSV: {e}", file=sys.stderr)
            return 1
        _logger.info("exported %d row(s) for account %s", n, account_id)
        return 0

    _print_view(account_id, view)
    return 0


def cmd_import(snapshot: Path, *, database_url: str | None) -> int:
    """Upsert a snapshot's account and records into the database."""

    try:
        doc = _read_snapshot(snapshot)
        account = _account_of(doc)
        account_id = str(account.get("id") or "").strip()
        if not account_id:
            raise ValueError("snapshot 'account.id' is required")
    except FileNotFoundError:
        print(f"Error: File not found: {snapshot}", file=sys.stderr)
        return 1
    except (ValueError, json.JSONDecodeError) as e:
        print(f"Error: invalid snapshot: {e}", file=sys.stderr)
        return 1

    try:
        from db.client import session_scope
        from .persistence import upsert_account, upsert_source_records

        counts: dict[str, int] = {}
        with session_scope(database_url=database_url) as session:
            upsert_account(
                session,
                account_id=account_id,
                name=str(account.get("name") or account_id),
                account_number=account.get("accountNumber"),
                account_type=account.get("accountType"),
                opening_balance=account.get("openingBalance"),
            )
            for kind in SOURCE_KINDS:
                counts[kind] = upsert_source_records(
                    session,
                    account_id=account_id,
                    collection=kind,
                    records=doc.get(kind) or [],
                )
    except Exception as e:
        print(f"Error: persistence (upsert) failed: {e}", file=sys.stderr)
        return 1

    summary = ", ".join(f"{k}={v}" for k, v in counts.items())
    print(f"Imported account {account_id}: {summary}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Account ledger views: merged sources, running balances, filters and CSV export.",
)


@app.callback()
def _root() -> None:
    """Load ``.env`` from the current directory and configure logging."""

    # override=False keeps already-set environment variables
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


@app.command("view")
def view_cmd(
    account_id: str = typer.Argument(..., help="Account whose ledger to show."),
    *,
    snapshot: Path | None = typer.Option(
        None, "--snapshot", help="Read sources from a JSON snapshot instead of the database."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    date_from: datetime | None = typer.Option(
        None, "--from", formats=["%Y-%m-%d"], help="First day to include (YYYY-MM-DD)."
    ),
    date_to: datetime | None = typer.Option(
        None, "--to", formats=["%Y-%m-%d"], help="Last day to include (YYYY-MM-DD)."
    ),
    search: str = typer.Option("", help="Case-insensitive free-text search."),
    transaction_type: str = typer.Option(
        TYPE_ALL, "--type", help=f"One of: {', '.join(TRANSACTION_TYPES)}."
    ),
    page: int = typer.Option(1, min=1, help="1-based page number."),
    page_size: int | None = typer.Option(
        None, min=1, help="Rows per page (defaults to LEDGER_BOOK_PAGE_SIZE or 25)."
    ),
    order: str = typer.Option("desc", help="Presentation order: asc or desc."),
    csv_path: Path | None = typer.Option(
        None, "--csv", help="Write filtered rows as CSV to this path ('-' for stdout)."
    ),
) -> None:
    if order not in ("asc", "desc"):
        print(f"Error: --order must be 'asc' or 'desc', got {order!r}", file=sys.stderr)
        raise typer.Exit(1)
    try:
        filters = LedgerFilters(
            date_from=date_from.date() if date_from else None,
            date_to=date_to.date() if date_to else None,
            search=search,
            transaction_type=transaction_type,
            tz=get_timezone(),
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise typer.Exit(1) from e

    code = cmd_view(
        account_id,
        snapshot=snapshot,
        database_url=database_url,
        filters=filters,
        page=page,
        page_size=page_size,
        order=order,
        csv_path=csv_path,
    )
    if code:
        raise typer.Exit(code)


@app.command("import")
def import_cmd(
    snapshot: Path = typer.Argument(..., help="JSON snapshot to load.", dir_okay=False),
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    code = cmd_import(snapshot, database_url=database_url)
    if code:
        raise typer.Exit(code)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
