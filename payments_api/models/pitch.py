import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from payments_api.models.base import MONEY, Base
from payments_api.models.enums import InvestmentPayoutStatus, InvestmentStatus

class Pitch(Base):
    __tablename__ = "pitches"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(sa.String(300), nullable=False)
    total_funded: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

class PitchInvestment(Base):
    __tablename__ = "pitch_investments"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    status: Mapped[str] = mapped_column(
        sa.String(32), nullable=False, default=InvestmentStatus.awaiting_payment.value
    )
    payout_status: Mapped[str] = mapped_column(
        sa.String(32), nullable=False, default=InvestmentPayoutStatus.pending.value
    )

    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_payout_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    currency: Mapped[str | None] = mapped_column(sa.String(8), nullable=True)

    investor_id: Mapped[str] = mapped_column(sa.String(64), index=True, nullable=False)
    recipient_id: Mapped[str] = mapped_column(sa.String(64), index=True, nullable=False)
    pitch_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("pitches.id"), index=True, nullable=False
    )

    monime_checkout_session_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    monime_payout_id: Mapped[str | None] = mapped_column(sa.String(255), index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
