import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from payments_api.models.base import MONEY, Base
from payments_api.models.enums import EscrowStatus

class DeliveryEscrow(Base):
    __tablename__ = "delivery_escrows"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    status: Mapped[str] = mapped_column(
        sa.String(32), nullable=False, default=EscrowStatus.awaiting_payment.value
    )

    payment_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    # 100 = full payment, anything else is the 50% compensation flow
    payment_percentage: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=100)
    platform_fee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_payout_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    currency: Mapped[str | None] = mapped_column(sa.String(8), nullable=True)
    files_released: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    creative_id: Mapped[str] = mapped_column(sa.String(64), index=True, nullable=False)
    employer_id: Mapped[str] = mapped_column(sa.String(64), index=True, nullable=False)
    submission_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("work_submissions.id"), nullable=True
    )
    opportunity_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("opportunities.id"), nullable=True
    )
    application_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)

    monime_payout_id: Mapped[str | None] = mapped_column(sa.String(255), index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
        nullable=False,
    )

    @property
    def is_full_payment(self) -> bool:
        return self.payment_percentage == 100
