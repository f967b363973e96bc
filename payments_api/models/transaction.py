import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from payments_api.models.base import MONEY, Base

class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        sa.UniqueConstraint("escrow_id", "payment_type", name="uq_transactions_escrow_payment_type"),
        sa.UniqueConstraint("pitch_investment_id", name="uq_transactions_pitch_investment"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    payer_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    payee_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)

    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    currency: Mapped[str] = mapped_column(sa.String(8), nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    payment_type: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="completed")

    escrow_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("delivery_escrows.id"), nullable=True
    )
    pitch_investment_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("pitch_investments.id"), nullable=True
    )
    opportunity_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)
    application_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)

    monime_checkout_session_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
