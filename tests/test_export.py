from __future__ import annotations

import csv
import io
from datetime import timedelta, timezone
from decimal import Decimal

import pytest

from ledger_book.api import LedgerView
from ledger_book.export import CSV_HEADERS, transaction_type_display, write_ledger_csv
from tests.helpers.ledger_data import ACCOUNT_ID, NOW, scenario_sources


def _export(view, **kw) -> list[list[str]]:
    buf = io.StringIO()
    n = write_ledger_csv(
        view.rows,
        total_debit=view.total_debit,
        total_credit=view.total_credit,
        stream=buf,
        **kw,
    )
    lines = list(csv.reader(io.StringIO(buf.getvalue())))
    assert n == len(lines) - 2
    return lines


def _scenario_view():
    return LedgerView.compute(
        scenario_sources(), Decimal(1000), "asc", account_id=ACCOUNT_ID, now=NOW
    )


def test_csv_layout():
    lines = _export(_scenario_view())
    assert tuple(lines[0]) == CSV_HEADERS
    assert len(lines) == 5

    first = dict(zip(CSV_HEADERS, lines[1], strict=True))
    assert first["Date"] == "01/01/2024"
    assert first["Transaction Time"] == "09:00"
    assert first["Description"] == "Owner top-up"
    assert (first["Debit"], first["Credit"], first["Balance"]) == ("0.00", "200.00", "1200.00")
    assert first["Type"] == "Income"
    assert first["Source"] == "account"

    ret = dict(zip(CSV_HEADERS, lines[2], strict=True))
    assert ret["Type"] == "Sales Return"
    assert (ret["Debit"], ret["Credit"], ret["Balance"]) == ("50.00", "0.00", "1150.00")

    assert lines[-1][:9] == ["Total", "", "", "", "", "", "", "50.00", "500.00"]


def test_csv_dates_follow_timezone():
    lines = _export(_scenario_view(), tz=timezone(timedelta(hours=-10)))
    # 09:00 UTC on Jan 1 is 23:00 on Dec 31 at UTC-10.
    assert lines[1][:2] == ["12/31/2023", "23:00"]


def test_commas_and_quotes_survive_round_trip():
    sources = {"ledger": [{"id": "x", "type": "income", "amount": 1, "description": 'Bolts, "M8"'}]}
    view = LedgerView.compute(sources, Decimal(0), account_id=ACCOUNT_ID, now=NOW)
    lines = _export(view)
    assert lines[1][2] == 'Bolts, "M8"'


def test_empty_export_is_rejected():
    with pytest.raises(ValueError):
        write_ledger_csv([], total_debit=Decimal(0), total_credit=Decimal(0), stream=io.StringIO())


@pytest.mark.parametrize(
    ("value", "label"),
    [
        ("transfer_in", "Transfer In"),
        ("Transfer_Out", "Transfer Out"),
        ("purchase_return", "Purchase Return"),
        ("deposit", "Deposit"),
        ("", "Unknown"),
        (None, "Unknown"),
        ("loan_payment", "loan_payment"),
    ],
)
def test_transaction_type_display(value, label):
    assert transaction_type_display(value) == label
