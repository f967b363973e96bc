"""wallet balances + ledger, cashout requests

Revision ID: 0002_wallet_ledger
Revises: 0001_init
Create Date: 2026-10-16
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0002_wallet_ledger"
down_revision: Union[str, None] = "0001_init"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table(
        "user_wallets",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("available_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("pending_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("user_id", "currency", name="uq_user_wallets_user_currency"),
        sa.CheckConstraint("available_balance >= 0", name="ck_user_wallets_available_non_negative"),
        sa.CheckConstraint("pending_balance >= 0", name="ck_user_wallets_pending_non_negative"),
    )

    op.create_table(
        "wallet_ledger",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("wallet_id", sa.Uuid(), sa.ForeignKey("user_wallets.id"), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("available_delta", sa.Numeric(12, 2), nullable=False),
        sa.Column("pending_delta", sa.Numeric(12, 2), nullable=False),
        sa.Column("entry_type", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("source_type", sa.String(length=32), nullable=False),
        sa.Column("source_id", sa.String(length=64), nullable=True),
        sa.Column("idempotency_key", sa.String(length=255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("idempotency_key", name="uq_wallet_ledger_idempotency_key"),
    )
    op.create_index("ix_wallet_ledger_wallet_id", "wallet_ledger", ["wallet_id"])
    op.create_index("ix_wallet_ledger_user_id", "wallet_ledger", ["user_id"])

    op.create_table(
        "cashout_requests",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("monime_payout_id", sa.String(length=255), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_cashout_requests_user_id", "cashout_requests", ["user_id"])
    op.create_index("ix_cashout_requests_monime_payout_id", "cashout_requests", ["monime_payout_id"])

def downgrade() -> None:
    op.drop_index("ix_cashout_requests_monime_payout_id", table_name="cashout_requests")
    op.drop_index("ix_cashout_requests_user_id", table_name="cashout_requests")
    op.drop_table("cashout_requests")
    op.drop_index("ix_wallet_ledger_user_id", table_name="wallet_ledger")
    op.drop_index("ix_wallet_ledger_wallet_id", table_name="wallet_ledger")
    op.drop_table("wallet_ledger")
    op.drop_table("user_wallets")
