# ruff: noqa: E501
from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from ledger_book.normalizers import (
    normalize_batch,
    normalize_expense,
    normalize_ledger_record,
    normalize_sale,
    normalize_sales_return,
    resolve_display_time,
)
from tests.helpers.ledger_data import ACCOUNT_ID, NOW


def _ledger(raw, **kw):
    kw.setdefault("account_id", ACCOUNT_ID)
    return normalize_ledger_record(raw, now=NOW, **kw)


def _sale(raw, account_id=ACCOUNT_ID):
    return normalize_sale(raw, account_id=account_id, now=NOW)


# ---- Display time ------------------------------------------------------------


def test_display_time_fallback_chain():
    t1 = datetime(2024, 1, 1, 8, tzinfo=UTC)
    t2 = datetime(2024, 1, 2, 8, tzinfo=UTC)
    t3 = datetime(2024, 1, 3, 8, tzinfo=UTC)
    assert resolve_display_time(transaction_time=t1, created_at=t2, business_date=t3, now=NOW) == t1
    assert resolve_display_time(transaction_time=None, created_at=t2, business_date=t3, now=NOW) == t2
    assert resolve_display_time(transaction_time=None, created_at=None, business_date=t3, now=NOW) == t3
    assert resolve_display_time(transaction_time=None, created_at=None, business_date=None, now=NOW) == NOW


def test_record_without_any_timestamp_uses_now():
    row = _ledger({"id": "x", "amount": 5, "type": "income"})
    assert row.display_time == NOW
    assert row.date == NOW


def test_document_store_timestamps_are_understood():
    row = _ledger(
        {
            "id": "x",
            "amount": 5,
            "type": "income",
            "transactionTime": {"seconds": 1704067200, "nanoseconds": 0},
        }
    )
    assert row.display_time == datetime(2024, 1, 1, tzinfo=UTC)


# ---- Manual ledger records ---------------------------------------------------


def test_ledger_explicit_amounts_are_taken_as_is():
    row = _ledger(
        {"id": "l1", "type": "income", "debit": 0, "credit": "200", "date": "2024-01-01"}
    )
    assert (row.debit, row.credit) == (Decimal(0), Decimal(200))
    assert row.source == "account"
    assert row.display_time == datetime(2024, 1, 1, tzinfo=UTC)
    assert row.added_by == "System"


def test_ledger_explicit_null_amount_reads_as_zero():
    row = _ledger({"id": "l1", "debit": None, "credit": 150, "amount": 999})
    assert (row.debit, row.credit) == (Decimal(0), Decimal(150))


def test_ledger_malformed_amount_coerces_to_zero():
    row = _ledger({"id": "l1", "debit": "oops", "credit": 10})
    assert row.debit == Decimal(0)


@pytest.mark.parametrize(
    ("type_", "debit", "credit"),
    [
        ("expense", 80, 0),
        ("transfer_out", 80, 0),
        ("sales_return", 80, 0),
        ("income", 0, 80),
        ("deposit", 0, 80),
        ("sale", 0, 80),
        ("loan_payment", 80, 0),  # keyword rule
        ("stock_return", 80, 0),  # keyword rule
        ("misc", 0, 80),
    ],
)
def test_ledger_amount_direction_from_type(type_, debit, credit):
    row = _ledger({"id": "l", "type": type_, "amount": 80})
    assert (row.debit, row.credit) == (Decimal(debit), Decimal(credit))


def test_purchase_payment_and_return_descriptions():
    pay = _ledger({"id": "p", "type": "purchase_payment", "amount": 40, "reference": "PO-1"})
    assert pay.debit == Decimal(40)
    assert pay.description == "Purchase Payment: PO-1"
    assert pay.payment_method == "Cash"

    ret = _ledger({"id": "q", "type": "purchase_return", "amount": 15, "referenceNo": "PO-2"})
    assert ret.credit == Decimal(15)
    assert ret.description == "Purchase Return: PO-2"


def test_transfer_direction_relative_to_viewed_account():
    raw = {
        "id": "t1",
        "type": "transfer",
        "amount": 100,
        "fromAccountId": "acc-1",
        "toAccountId": "acc-2",
    }
    names = {"acc-1": "Cash", "acc-2": "Bank"}

    out = _ledger(raw, account_id="acc-1", account_names=names)
    assert (out.debit, out.credit) == (Decimal(100), Decimal(0))
    assert out.description == "Transfer to Bank"
    assert out.payment_method == "Fund Transfer"
    assert out.source == "transfer"

    incoming = _ledger(raw, account_id="acc-2", account_names=names)
    assert (incoming.debit, incoming.credit) == (Decimal(0), Decimal(100))
    assert incoming.description == "Transfer from Cash"

    bystander = _ledger(raw, account_id="acc-3", account_names=names)
    assert (bystander.debit, bystander.credit) == (Decimal(0), Decimal(0))


def test_transfer_to_unknown_account_name():
    row = _ledger({"id": "t", "type": "transfer_out", "amount": 5, "toAccountId": "zzz"})
    assert row.description == "Transfer to Unknown Account"


def test_capital_flag_marks_transaction_credit():
    row = _ledger({"id": "c", "type": "expense", "amount": 10, "isCapitalTransaction": True})
    assert row.transaction_credit is True


def test_default_type_when_blank():
    assert _ledger({"id": "a", "debit": 5, "credit": 0}).type == "expense"
    assert _ledger({"id": "b", "debit": 0, "credit": 5}).type == "income"
    assert _ledger({"id": "c", "source": "purchase", "debit": 5, "credit": 0}).type == "purchase"


# ---- Sales -------------------------------------------------------------------


def test_sale_becomes_credit_row():
    row = _sale(
        {
            "id": "s1",
            "invoiceNo": "INV-1",
            "paymentAmount": 300,
            "paymentMethod": "Cash",
            "saleDate": "2024-01-03",
            "addedByDisplayName": "Ann",
            "customer": "Lee",
        }
    )
    assert row is not None
    assert (row.source, row.type) == ("sale", "sale")
    assert (row.debit, row.credit) == (Decimal(0), Decimal(300))
    assert row.description == "Sale: INV-1"
    assert row.added_by == "Ann"
    assert row.customer_name == "Lee"
    assert row.display_time == datetime(2024, 1, 3, tzinfo=UTC)


@pytest.mark.parametrize("amount", [0, -5, None, "garbage"])
def test_sale_without_positive_payment_is_dropped(amount):
    assert _sale({"id": "s", "paymentAmount": amount}) is None


def test_sale_missing_payment_is_dropped():
    assert _sale({"id": "s", "invoiceNo": "INV-2"}) is None


def test_split_payment_leg_for_viewed_account_overrides_credit():
    raw = {
        "id": "s1",
        "invoiceNo": "INV-1",
        "paymentAmount": 300,
        "paymentMethod": "Mixed",
        "payments": [
            {"accountId": "acc-2", "amount": 100, "method": "Card"},
            {"accountId": "acc-1", "amount": 200, "method": "Cash"},
        ],
    }
    row = _sale(raw)
    assert row is not None
    assert row.credit == Decimal(200)
    assert row.payment_method == "Cash"

    other = _sale(raw, account_id="acc-9")
    assert other is not None
    assert other.credit == Decimal(300)


def test_sale_business_date_fallbacks():
    row = _sale({"id": "s", "paymentAmount": 10, "completedAt": "2024-02-02", "date": "2024-02-05"})
    assert row is not None
    assert row.date == datetime(2024, 2, 2, tzinfo=UTC)


# ---- Expenses and returns ----------------------------------------------------


def test_expense_becomes_debit_row():
    row = normalize_expense(
        {
            "id": "e1",
            "expenseCategory": "Rent",
            "expenseNote": "May",
            "paymentAmount": "500",
            "paidOn": "2024-05-01",
        },
        now=NOW,
    )
    assert (row.source, row.type) == ("expense", "expense")
    assert (row.debit, row.credit) == (Decimal(500), Decimal(0))
    assert row.description == "Rent: May"
    assert row.category == "Rent"


def test_expense_description_defaults():
    row = normalize_expense({"id": "e2", "paymentAmount": 1}, now=NOW)
    assert row.description == "Expense: No description"


def test_sales_return_becomes_debit_row():
    row = normalize_sales_return(
        {"id": "r1", "source": "sales_return", "debit": 50, "invoiceNo": "INV-1", "returnDate": "2024-01-02"},
        now=NOW,
    )
    assert row is not None
    assert (row.debit, row.credit) == (Decimal(50), Decimal(0))
    assert row.description == "Sales Return Refund: INV-1"
    assert row.display_time == datetime(2024, 1, 2, tzinfo=UTC)


def test_untagged_return_is_ignored():
    assert normalize_sales_return({"id": "r2", "debit": 50}, now=NOW) is None


# ---- Batch -------------------------------------------------------------------


def test_normalize_batch_drops_ineligible_and_junk_records():
    records = [
        {"id": "s1", "paymentAmount": 10},
        "not-a-record",
        {"id": "s2", "paymentAmount": 0},
        None,
    ]
    rows = normalize_batch(records, normalize_sale, account_id=ACCOUNT_ID, now=NOW)
    assert [r.id for r in rows] == ["s1"]
