"""Source record -> ``LedgerTransaction`` normalizers.

One pure mapping function per input variant:

- :func:`normalize_ledger_record` for manual ledger (account book) documents;
- :func:`normalize_sale` for sales (returns ``None`` for ineligible sales);
- :func:`normalize_expense` for expenses;
- :func:`normalize_sales_return` for sales-return refunds (returns ``None``
  unless the record is tagged ``sales_return``).

Each record also resolves a display time through the fallback chain
transaction time -> creation time -> business date -> ``now``. ``now`` is an
explicit argument so a computation pass never reads the wall clock per row.

Malformed numeric fields coerce to ``0``. Records failing a source-specific
validity gate are dropped without raising; :func:`normalize_batch` applies a
normalizer over a snapshot and also drops records that fail validation.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .coercion import ZERO, first_text
from .logging_setup import get_logger
from .models import (
    KNOWN_SOURCES,
    SOURCE_ACCOUNT,
    SOURCE_EXPENSE,
    SOURCE_PURCHASE,
    SOURCE_SALE,
    SOURCE_SALES_RETURN,
    SOURCE_TRANSFER,
    TRANSFER_TYPES,
    ExpenseInput,
    LedgerInput,
    LedgerSource,
    LedgerTransaction,
    ReturnInput,
    SaleInput,
)

_logger = get_logger("ledger_book.normalizers")

ModelT = TypeVar("ModelT", bound=BaseModel)

# ---------------------------------------------------------------------------
# Amount rules for manual ledger records without explicit debit/credit
# ---------------------------------------------------------------------------

_DEBIT_TYPES: frozenset[str] = frozenset(
    {"expense", "transfer_out", "purchase_payment", "sales_return"}
)
_CREDIT_TYPES: frozenset[str] = frozenset(
    {"income", "transfer_in", "sale", "purchase_return", "deposit"}
)
# Fallback keyword rule: any type containing one of these is a debit.
_DEBIT_KEYWORDS: tuple[str, ...] = ("expense", "payment", "return")

_UNKNOWN_ACCOUNT = "Unknown Account"


def resolve_display_time(
    *,
    transaction_time: datetime | None,
    created_at: datetime | None,
    business_date: datetime | None,
    now: datetime,
) -> datetime:
    """Return the first available of transaction time, creation time, business date, ``now``."""

    for candidate in (transaction_time, created_at, business_date):
        if candidate is not None:
            return candidate
    return now


def _coerce(raw: ModelT | Mapping[str, Any], model: type[ModelT]) -> ModelT:
    if isinstance(raw, model):
        return raw
    return model.model_validate(raw)


def _is_debit_keyword(type_: str) -> bool:
    lowered = type_.lower()
    return any(k in lowered for k in _DEBIT_KEYWORDS)


def _account_name(account_names: Mapping[str, str] | None, account_id: str) -> str:
    if not account_id:
        return _UNKNOWN_ACCOUNT
    return (account_names or {}).get(account_id) or _UNKNOWN_ACCOUNT


def _amounts_from_type(
    rec: LedgerInput,
    *,
    account_id: str,
    account_names: Mapping[str, str] | None,
) -> tuple[Decimal, Decimal, str, str]:
    """Derive ``(debit, credit, description, payment_method)`` from ``amount`` and ``type``."""

    amount = rec.amount
    type_ = rec.type.strip()
    description = rec.description
    method = rec.payment_method
    ref = rec.reference or rec.reference_no

    if type_ == "purchase_payment":
        return amount, ZERO, f"Purchase Payment: {ref}", method or "Cash"
    if type_ == "purchase_return":
        return ZERO, amount, f"Purchase Return: {ref}", method or "Purchase Return"
    if type_ in TRANSFER_TYPES:
        outgoing = type_ == "transfer_out" or (
            type_ == "transfer" and bool(account_id) and rec.from_account_id == account_id
        )
        incoming = type_ == "transfer_in" or (
            type_ == "transfer" and bool(account_id) and rec.to_account_id == account_id
        )
        if outgoing:
            name = _account_name(account_names, rec.to_account_id)
            return amount, ZERO, description or f"Transfer to {name}", "Fund Transfer"
        if incoming:
            name = _account_name(account_names, rec.from_account_id)
            return ZERO, amount, description or f"Transfer from {name}", "Fund Transfer"
        # A transfer between two other accounts does not move this balance.
        return ZERO, ZERO, description, method
    if type_ in _DEBIT_TYPES:
        return amount, ZERO, description, method
    if type_ in _CREDIT_TYPES:
        return ZERO, amount, description, method
    if _is_debit_keyword(type_):
        return amount, ZERO, description, method
    return ZERO, amount, description, method


def _ledger_source(rec: LedgerInput) -> LedgerSource:
    tag = rec.source.strip()
    if tag in KNOWN_SOURCES:
        return tag  # type: ignore[return-value]
    if rec.type.strip() in TRANSFER_TYPES:
        return SOURCE_TRANSFER
    return SOURCE_ACCOUNT


def _default_type(source: str, debit: Decimal) -> str:
    if source in (SOURCE_PURCHASE, SOURCE_SALE, SOURCE_SALES_RETURN):
        return source
    return "expense" if debit > 0 else "income"


# ---------------------------------------------------------------------------
# Per-source normalizers
# ---------------------------------------------------------------------------


def normalize_ledger_record(
    raw: LedgerInput | Mapping[str, Any],
    *,
    account_id: str,
    now: datetime,
    account_names: Mapping[str, str] | None = None,
) -> LedgerTransaction:
    """Normalize a manual ledger document.

    Debit/credit are taken as-is when the document carries both keys. Otherwise
    they are derived from ``amount``: explicit type table first, then transfer
    direction relative to ``account_id``, then the keyword rule (types
    containing ``expense``, ``payment`` or ``return`` are debits, anything else
    a credit).
    """

    rec = _coerce(raw, LedgerInput)

    if rec.has_explicit_amounts:
        debit = rec.debit if rec.debit is not None else ZERO
        credit = rec.credit if rec.credit is not None else ZERO
        description, method = rec.description, rec.payment_method
    else:
        debit, credit, description, method = _amounts_from_type(
            rec, account_id=account_id, account_names=account_names
        )

    source = _ledger_source(rec)
    display_time = resolve_display_time(
        transaction_time=rec.transaction_time,
        created_at=rec.created_at,
        business_date=rec.date,
        now=now,
    )
    reference = rec.reference or rec.reference_no
    return LedgerTransaction(
        id=rec.id,
        date=rec.date or display_time,
        display_time=display_time,
        created_at=rec.created_at,
        source=source,
        type=rec.type.strip() or _default_type(source, debit),
        debit=debit,
        credit=credit,
        description=description,
        payment_method=method,
        payment_details=rec.reference or rec.payment_details,
        note=rec.note,
        added_by=rec.added_by or "System",
        reference_no=reference,
        related_doc_id=rec.related_doc_id,
        invoice_no=rec.invoice_no,
        sale_id=rec.sale_id,
        customer_name=rec.customer_name or rec.customer,
        category=rec.category,
        from_account_id=rec.from_account_id,
        to_account_id=rec.to_account_id,
        attachment_url=rec.attachment_url,
        has_document=rec.has_document,
        transaction_credit=rec.transaction_credit or rec.is_capital_transaction,
    )


def normalize_sale(
    raw: SaleInput | Mapping[str, Any],
    *,
    account_id: str,
    now: datetime,
) -> LedgerTransaction | None:
    """Normalize a sale into a credit row, or ``None`` when it carries no payment.

    The credit defaults to ``paymentAmount``. When the sale lists split
    payments, the leg paid into ``account_id`` overrides the credit and the
    payment method.
    """

    sale = _coerce(raw, SaleInput)
    if sale.payment_amount is None or sale.payment_amount <= 0:
        return None

    credit = sale.payment_amount
    method = sale.payment_method
    for leg in sale.payments:
        if account_id and leg.account_id == account_id:
            credit = leg.amount
            method = leg.method or method
            break
    if credit <= 0:
        return None

    business_date = sale.sale_date or sale.completed_at or sale.paid_on or sale.date
    display_time = resolve_display_time(
        transaction_time=sale.transaction_time,
        created_at=sale.created_at,
        business_date=business_date,
        now=now,
    )
    return LedgerTransaction(
        id=sale.id,
        date=business_date or display_time,
        display_time=display_time,
        created_at=sale.created_at,
        source=SOURCE_SALE,
        type="sale",
        debit=ZERO,
        credit=credit,
        description=f"Sale: {sale.invoice_no or 'No invoice'}",
        payment_method=method,
        payment_details=sale.transaction_id,
        note=sale.note,
        added_by=first_text(sale.added_by_display_name, sale.added_by) or "System",
        reference_no=sale.invoice_no,
        related_doc_id=sale.id,
        invoice_no=sale.invoice_no,
        sale_id=sale.id,
        customer_name=sale.customer or sale.customer_name,
        attachment_url=sale.document,
        has_document=bool(sale.document),
        transaction_credit=sale.transaction_credit,
    )


def normalize_expense(
    raw: ExpenseInput | Mapping[str, Any],
    *,
    now: datetime,
) -> LedgerTransaction:
    """Normalize an expense into a debit row."""

    exp = _coerce(raw, ExpenseInput)
    business_date = exp.paid_on or exp.date
    display_time = resolve_display_time(
        transaction_time=exp.transaction_time,
        created_at=exp.created_at,
        business_date=business_date,
        now=now,
    )
    return LedgerTransaction(
        id=exp.id,
        date=business_date or display_time,
        display_time=display_time,
        created_at=exp.created_at,
        source=SOURCE_EXPENSE,
        type="expense",
        debit=exp.payment_amount,
        credit=ZERO,
        description=(
            f"{exp.expense_category or 'Expense'}: {exp.expense_note or 'No description'}"
        ),
        payment_method=exp.payment_method,
        payment_details=exp.reference_no,
        note=exp.expense_note,
        added_by=first_text(exp.added_by_display_name, exp.added_by) or "System",
        reference_no=exp.reference_no,
        category=exp.expense_category,
        attachment_url=exp.document,
        has_document=bool(exp.document),
    )


def normalize_sales_return(
    raw: ReturnInput | Mapping[str, Any],
    *,
    now: datetime,
) -> LedgerTransaction | None:
    """Normalize a sales-return refund; ``None`` unless tagged ``sales_return``."""

    ret = _coerce(raw, ReturnInput)
    if ret.source.strip() != SOURCE_SALES_RETURN:
        return None

    business_date = ret.date or ret.return_date
    display_time = resolve_display_time(
        transaction_time=ret.transaction_time,
        created_at=ret.created_at,
        business_date=business_date,
        now=now,
    )
    reference = ret.reference or ret.reference_no or ret.invoice_no
    return LedgerTransaction(
        id=ret.id,
        date=business_date or display_time,
        display_time=display_time,
        created_at=ret.created_at,
        source=SOURCE_SALES_RETURN,
        type="sales_return",
        debit=ret.debit,
        credit=ZERO,
        description=ret.description or f"Sales Return Refund: {ret.invoice_no or reference}",
        payment_method=ret.payment_method,
        payment_details=reference,
        note=ret.note,
        added_by=ret.added_by or "System",
        reference_no=reference,
        related_doc_id=ret.related_doc_id,
        invoice_no=ret.invoice_no,
        sale_id=ret.original_sale_id,
        customer_name=ret.customer_name,
    )


# ---------------------------------------------------------------------------
# Batch helper
# ---------------------------------------------------------------------------


def normalize_batch(
    records: Iterable[Mapping[str, Any] | BaseModel],
    normalizer: Callable[..., LedgerTransaction | None],
    **kwargs: Any,
) -> list[LedgerTransaction]:
    """Apply ``normalizer`` to every record, dropping ineligible or invalid ones.

    ``kwargs`` are forwarded to the normalizer (``account_id``, ``now``, ...).
    Records that cannot be validated at all (e.g., a non-mapping payload) are
    logged at DEBUG and skipped; this function never raises for record-level
    problems.
    """

    out: list[LedgerTransaction] = []
    dropped = 0
    for rec in records:
        if not isinstance(rec, (Mapping, BaseModel)):
            dropped += 1
            continue
        try:
            row = normalizer(rec, **kwargs)
        except ValidationError as exc:
            _logger.debug("dropping invalid record via %s: %s", normalizer.__name__, exc)
            dropped += 1
            continue
        if row is None:
            dropped += 1
            continue
        out.append(row)
    if dropped:
        _logger.debug("%s dropped %d record(s)", normalizer.__name__, dropped)
    return out


__all__ = [
    "normalize_batch",
    "normalize_expense",
    "normalize_ledger_record",
    "normalize_sale",
    "normalize_sales_return",
    "resolve_display_time",
]
