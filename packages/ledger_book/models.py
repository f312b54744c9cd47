"""Data models and type aliases for ``ledger_book``.

Two layers live here:

- Input variants (pydantic): ``LedgerInput``, ``SaleInput``, ``ExpenseInput``
  and ``ReturnInput`` model the raw documents delivered by upstream sources.
  They accept the upstream camelCase keys, ignore unknown keys and coerce
  malformed values leniently (see :mod:`ledger_book.coercion`) rather than
  failing validation.
- Output rows (frozen dataclasses): ``LedgerTransaction`` is the uniform
  shape every normalizer emits and every later stage consumes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from .coercion import (
    ZERO,
    coerce_flag,
    coerce_text,
    to_datetime,
    to_decimal,
    to_optional_decimal,
)

# ---------------------------------------------------------------------------
# Tags and aliases
# ---------------------------------------------------------------------------

LedgerSource: TypeAlias = Literal[
    "account", "sale", "expense", "sales_return", "transfer", "journal", "purchase"
]
"""Provenance tag of a ledger row; drives sign-rule selection and dedup."""

SortDirection: TypeAlias = Literal["asc", "desc"]

RawRecord: TypeAlias = Mapping[str, Any]
"""A single upstream document as delivered by a source subscription."""

SOURCE_ACCOUNT: LedgerSource = "account"
SOURCE_SALE: LedgerSource = "sale"
SOURCE_EXPENSE: LedgerSource = "expense"
SOURCE_SALES_RETURN: LedgerSource = "sales_return"
SOURCE_TRANSFER: LedgerSource = "transfer"
SOURCE_JOURNAL: LedgerSource = "journal"
SOURCE_PURCHASE: LedgerSource = "purchase"

KNOWN_SOURCES: frozenset[str] = frozenset(
    {
        SOURCE_ACCOUNT,
        SOURCE_SALE,
        SOURCE_EXPENSE,
        SOURCE_SALES_RETURN,
        SOURCE_TRANSFER,
        SOURCE_JOURNAL,
        SOURCE_PURCHASE,
    }
)

TRANSFER_TYPES: frozenset[str] = frozenset({"transfer", "transfer_in", "transfer_out"})


class OpeningBalanceUnavailable(RuntimeError):
    """Raised when an account's opening balance cannot be resolved.

    The balance calculator must never run against a guessed opening balance,
    so callers treat this as "still loading" for the current cycle.
    """


# ---------------------------------------------------------------------------
# Input variants
# ---------------------------------------------------------------------------


class _RawInput(BaseModel):
    """Common configuration for upstream documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    id: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_text(cls, v: Any) -> str:
        return coerce_text(v).strip()


class LedgerInput(_RawInput):
    """A manual ledger (account book) document."""

    date: datetime | None = None
    transaction_time: datetime | None = None
    created_at: datetime | None = None

    type: str = ""
    source: str = ""
    description: str = ""
    payment_method: str = ""
    payment_details: str = ""
    note: str = ""
    added_by: str = ""
    reference: str = ""
    reference_no: str = ""
    related_doc_id: str = ""
    sale_id: str = ""
    invoice_no: str = ""
    customer: str = ""
    customer_name: str = ""
    category: str = ""
    attachment_url: str = ""
    from_account_id: str = ""
    to_account_id: str = ""

    amount: Decimal = ZERO
    debit: Decimal | None = None
    credit: Decimal | None = None

    transaction_credit: bool = False
    is_capital_transaction: bool = False
    has_document: bool = False

    @field_validator("date", "transaction_time", "created_at", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> datetime | None:
        return to_datetime(v)

    @field_validator(
        "type",
        "source",
        "description",
        "payment_method",
        "payment_details",
        "note",
        "added_by",
        "reference",
        "reference_no",
        "related_doc_id",
        "sale_id",
        "invoice_no",
        "customer",
        "customer_name",
        "category",
        "attachment_url",
        "from_account_id",
        "to_account_id",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str:
        return coerce_text(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_validator("debit", "credit", mode="before")
    @classmethod
    def _optional_amounts(cls, v: Any) -> Decimal | None:
        return to_optional_decimal(v)

    @field_validator("transaction_credit", "is_capital_transaction", "has_document", mode="before")
    @classmethod
    def _flags(cls, v: Any) -> bool:
        return coerce_flag(v)

    @property
    def has_explicit_amounts(self) -> bool:
        """True when both ``debit`` and ``credit`` keys were supplied (even as null)."""

        return {"debit", "credit"} <= self.model_fields_set


class SplitPayment(BaseModel):
    """One leg of a split-payment sale, keyed by the receiving account."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True
    )

    account_id: str = ""
    amount: Decimal = ZERO
    method: str = ""

    @field_validator("account_id", "method", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return coerce_text(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> Decimal:
        return to_decimal(v)


class SaleInput(_RawInput):
    """A sales document as delivered by the sales source."""

    invoice_no: str = ""
    payment_amount: Decimal | None = None
    payments: tuple[SplitPayment, ...] = ()
    payment_method: str = ""
    transaction_id: str = ""
    note: str = ""
    added_by: str = ""
    added_by_display_name: str = ""
    customer: str = ""
    customer_name: str = ""
    status: str = ""
    payment_status: str = ""
    document: str = ""

    sale_date: datetime | None = None
    completed_at: datetime | None = None
    paid_on: datetime | None = None
    date: datetime | None = None
    transaction_time: datetime | None = None
    created_at: datetime | None = None

    transaction_credit: bool = False

    @field_validator(
        "sale_date",
        "completed_at",
        "paid_on",
        "date",
        "transaction_time",
        "created_at",
        mode="before",
    )
    @classmethod
    def _dates(cls, v: Any) -> datetime | None:
        return to_datetime(v)

    @field_validator(
        "invoice_no",
        "payment_method",
        "transaction_id",
        "note",
        "added_by",
        "added_by_display_name",
        "customer",
        "customer_name",
        "status",
        "payment_status",
        "document",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str:
        return coerce_text(v)

    @field_validator("payment_amount", mode="before")
    @classmethod
    def _payment_amount(cls, v: Any) -> Decimal | None:
        return to_optional_decimal(v)

    @field_validator("payments", mode="before")
    @classmethod
    def _payments(cls, v: Any) -> tuple[Any, ...]:
        # Non-list payloads and non-mapping legs are ignored.
        if not isinstance(v, (list, tuple)):
            return ()
        return tuple(p for p in v if isinstance(p, Mapping))

    @field_validator("transaction_credit", mode="before")
    @classmethod
    def _flags(cls, v: Any) -> bool:
        return coerce_flag(v)


class ExpenseInput(_RawInput):
    """An expense document."""

    expense_category: str = ""
    expense_note: str = ""
    payment_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    payment_method: str = ""
    reference_no: str = ""
    added_by: str = ""
    added_by_display_name: str = ""
    document: str = ""

    paid_on: datetime | None = None
    date: datetime | None = None
    transaction_time: datetime | None = None
    created_at: datetime | None = None

    @field_validator("paid_on", "date", "transaction_time", "created_at", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> datetime | None:
        return to_datetime(v)

    @field_validator(
        "expense_category",
        "expense_note",
        "payment_method",
        "reference_no",
        "added_by",
        "added_by_display_name",
        "document",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str:
        return coerce_text(v)

    @field_validator("payment_amount", "total_amount", mode="before")
    @classmethod
    def _amounts(cls, v: Any) -> Decimal:
        return to_decimal(v)


class ReturnInput(_RawInput):
    """A sales-return refund document."""

    source: str = ""
    debit: Decimal = ZERO
    description: str = ""
    invoice_no: str = ""
    reference: str = ""
    reference_no: str = ""
    related_doc_id: str = ""
    original_sale_id: str = ""
    payment_method: str = ""
    customer_name: str = ""
    note: str = ""
    added_by: str = ""

    date: datetime | None = None
    return_date: datetime | None = None
    transaction_time: datetime | None = None
    created_at: datetime | None = None

    @field_validator("date", "return_date", "transaction_time", "created_at", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> datetime | None:
        return to_datetime(v)

    @field_validator(
        "source",
        "description",
        "invoice_no",
        "reference",
        "reference_no",
        "related_doc_id",
        "original_sale_id",
        "payment_method",
        "customer_name",
        "note",
        "added_by",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str:
        return coerce_text(v)

    @field_validator("debit", mode="before")
    @classmethod
    def _debit(cls, v: Any) -> Decimal:
        return to_decimal(v)


# ---------------------------------------------------------------------------
# Output rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    """A single normalized ledger row.

    Instances are rebuilt from upstream snapshots on every recomputation and
    never mutated; the balance calculator returns copies carrying ``balance``.
    ``display_time`` (not ``date``) is what filtering and ordering use.
    """

    id: str
    date: datetime
    display_time: datetime
    source: LedgerSource
    type: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    balance: Decimal = ZERO
    created_at: datetime | None = None
    description: str = ""
    payment_method: str = ""
    payment_details: str = ""
    note: str = ""
    added_by: str = "System"
    reference_no: str = ""
    related_doc_id: str = ""
    invoice_no: str = ""
    sale_id: str = ""
    customer_name: str = ""
    category: str = ""
    from_account_id: str = ""
    to_account_id: str = ""
    attachment_url: str = ""
    has_document: bool = False
    transaction_credit: bool = False


@dataclass(frozen=True, slots=True)
class AccountState:
    """Opening and derived current balance of the viewed account."""

    opening_balance: Decimal
    current_balance: Decimal


@dataclass(frozen=True, slots=True)
class BalancedLedger:
    """Rows in ascending chronological order with their running balances."""

    rows: tuple[LedgerTransaction, ...]
    account: AccountState

    @property
    def current_balance(self) -> Decimal:
        return self.account.current_balance


__all__ = [
    "AccountState",
    "BalancedLedger",
    "ExpenseInput",
    "KNOWN_SOURCES",
    "LedgerInput",
    "LedgerSource",
    "LedgerTransaction",
    "OpeningBalanceUnavailable",
    "RawRecord",
    "ReturnInput",
    "SOURCE_ACCOUNT",
    "SOURCE_EXPENSE",
    "SOURCE_JOURNAL",
    "SOURCE_PURCHASE",
    "SOURCE_SALE",
    "SOURCE_SALES_RETURN",
    "SOURCE_TRANSFER",
    "SaleInput",
    "SortDirection",
    "SplitPayment",
    "TRANSFER_TYPES",
]
