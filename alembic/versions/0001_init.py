"""init schema

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-16
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

def _money(name: str, **kw) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), **kw)

def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)

def upgrade() -> None:
    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("event_id", sa.String(length=255), nullable=False),
        sa.Column("event_name", sa.String(length=255), nullable=True),
        sa.Column("object_id", sa.String(length=255), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("provider", "event_id", name="uq_webhook_events_provider_event_id"),
    )

    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("payout_mode", sa.String(length=16), nullable=False, server_default="auto"),
        sa.Column("payment_provider", sa.String(length=16), nullable=True),
        sa.Column("payment_provider_id", sa.String(length=64), nullable=True),
        sa.Column("payment_account", sa.String(length=64), nullable=True),
    )

    op.create_table(
        "opportunities",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
    )
    op.create_table(
        "work_submissions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="submitted"),
    )
    op.create_table(
        "pitches",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        _money("total_funded", nullable=False, server_default="0"),
    )

    op.create_table(
        "delivery_escrows",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="awaiting_payment"),
        _money("payment_amount", nullable=False),
        sa.Column("payment_percentage", sa.Integer(), nullable=False, server_default="100"),
        _money("platform_fee", nullable=False, server_default="0"),
        _money("net_payout_amount", nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("files_released", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("creative_id", sa.String(length=64), nullable=False),
        sa.Column("employer_id", sa.String(length=64), nullable=False),
        sa.Column("submission_id", sa.Uuid(), sa.ForeignKey("work_submissions.id"), nullable=True),
        sa.Column("opportunity_id", sa.Uuid(), sa.ForeignKey("opportunities.id"), nullable=True),
        sa.Column("application_id", sa.Uuid(), nullable=True),
        sa.Column("monime_payout_id", sa.String(length=255), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_delivery_escrows_creative_id", "delivery_escrows", ["creative_id"])
    op.create_index("ix_delivery_escrows_employer_id", "delivery_escrows", ["employer_id"])
    op.create_index("ix_delivery_escrows_monime_payout_id", "delivery_escrows", ["monime_payout_id"])

    op.create_table(
        "pitch_investments",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="awaiting_payment"),
        sa.Column("payout_status", sa.String(length=32), nullable=False, server_default="pending"),
        _money("amount", nullable=False),
        _money("platform_fee", nullable=False, server_default="0"),
        _money("net_payout_amount", nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("investor_id", sa.String(length=64), nullable=False),
        sa.Column("recipient_id", sa.String(length=64), nullable=False),
        sa.Column("pitch_id", sa.Uuid(), sa.ForeignKey("pitches.id"), nullable=False),
        sa.Column("monime_checkout_session_id", sa.String(length=255), nullable=True),
        sa.Column("monime_payout_id", sa.String(length=255), nullable=True),
        _created_at(),
    )
    op.create_index("ix_pitch_investments_investor_id", "pitch_investments", ["investor_id"])
    op.create_index("ix_pitch_investments_recipient_id", "pitch_investments", ["recipient_id"])
    op.create_index("ix_pitch_investments_pitch_id", "pitch_investments", ["pitch_id"])
    op.create_index("ix_pitch_investments_monime_payout_id", "pitch_investments", ["monime_payout_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("payer_id", sa.String(length=64), nullable=False),
        sa.Column("payee_id", sa.String(length=64), nullable=False),
        _money("amount", nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        _money("platform_fee", nullable=False, server_default="0"),
        _money("net_amount", nullable=False),
        sa.Column("payment_type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("escrow_id", sa.Uuid(), sa.ForeignKey("delivery_escrows.id"), nullable=True),
        sa.Column("pitch_investment_id", sa.Uuid(), sa.ForeignKey("pitch_investments.id"), nullable=True),
        sa.Column("opportunity_id", sa.Uuid(), nullable=True),
        sa.Column("application_id", sa.Uuid(), nullable=True),
        sa.Column("monime_checkout_session_id", sa.String(length=255), nullable=True),
        _created_at(),
        sa.UniqueConstraint("escrow_id", "payment_type", name="uq_transactions_escrow_payment_type"),
        sa.UniqueConstraint("pitch_investment_id", name="uq_transactions_pitch_investment"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

def downgrade() -> None:
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("transactions")
    op.drop_index("ix_pitch_investments_monime_payout_id", table_name="pitch_investments")
    op.drop_index("ix_pitch_investments_pitch_id", table_name="pitch_investments")
    op.drop_index("ix_pitch_investments_recipient_id", table_name="pitch_investments")
    op.drop_index("ix_pitch_investments_investor_id", table_name="pitch_investments")
    op.drop_table("pitch_investments")
    op.drop_index("ix_delivery_escrows_monime_payout_id", table_name="delivery_escrows")
    op.drop_index("ix_delivery_escrows_employer_id", table_name="delivery_escrows")
    op.drop_index("ix_delivery_escrows_creative_id", table_name="delivery_escrows")
    op.drop_table("delivery_escrows")
    op.drop_table("pitches")
    op.drop_table("work_submissions")
    op.drop_table("opportunities")
    op.drop_table("profiles")
    op.drop_table("webhook_events")
