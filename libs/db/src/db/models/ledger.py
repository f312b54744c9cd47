from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Source collections a record can belong to.
LB_COLLECTIONS: tuple[str, ...] = ("ledger", "sales", "expenses", "returns")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: lb_accounts
# ---------------------------


class LbAccount(Base):
    __tablename__ = "lb_accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    account_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    account_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    # NULL means the opening balance is not known yet; ledger views wait for it.
    opening_balance: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Core: lb_source_records
# ---------------------------


class LbSourceRecord(Base):
    """Raw upstream document, stored verbatim per (account, collection, external id)."""

    __tablename__ = "lb_source_records"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("lb_accounts.id", ondelete="CASCADE"), nullable=False
    )
    collection: Mapped[str] = mapped_column(String, nullable=False)
    external_id: Mapped[str] = mapped_column(String, nullable=False)
    raw_record: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "account_id", "collection", "external_id", name="uq_lb_source_record_identity"
        ),
        CheckConstraint(
            "collection in ('ledger','sales','expenses','returns')",
            name="ck_lb_source_record_collection",
        ),
        Index("ix_lb_source_records_account_collection", "account_id", "collection"),
    )


__all__ = [
    "Base",
    "LB_COLLECTIONS",
    "LbAccount",
    "LbSourceRecord",
]
