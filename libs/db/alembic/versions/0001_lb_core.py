# ruff: noqa: I001
"""Ledger book core tables: accounts and raw source records.

Revision ID: 0001_lb_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_lb_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # lb_accounts
    op.create_table(
        "lb_accounts",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("account_number", sa.Text(), nullable=True),
        sa.Column("account_type", sa.Text(), nullable=True),
        sa.Column("opening_balance", sa.Numeric(18, 2), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # lb_source_records
    op.create_table(
        "lb_source_records",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.Text(),
            sa.ForeignKey("lb_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("collection", sa.Text(), nullable=False),
        sa.Column("external_id", sa.Text(), nullable=False),
        sa.Column("raw_record", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "account_id", "collection", "external_id", name="uq_lb_source_record_identity"
        ),
        sa.CheckConstraint(
            "collection in ('ledger','sales','expenses','returns')",
            name="ck_lb_source_record_collection",
        ),
    )
    op.create_index(
        "ix_lb_source_records_account_collection",
        "lb_source_records",
        ["account_id", "collection"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_lb_source_records_account_collection", table_name="lb_source_records")
    op.drop_table("lb_source_records")
    op.drop_table("lb_accounts")
