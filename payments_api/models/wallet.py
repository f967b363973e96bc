import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from payments_api.models.base import MONEY, Base, JSONType

class UserWallet(Base):
    __tablename__ = "user_wallets"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "currency", name="uq_user_wallets_user_currency"),
        sa.CheckConstraint("available_balance >= 0", name="ck_user_wallets_available_non_negative"),
        sa.CheckConstraint("pending_balance >= 0", name="ck_user_wallets_pending_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    currency: Mapped[str] = mapped_column(sa.String(8), nullable=False)

    available_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    pending_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
        nullable=False,
    )

class WalletLedgerEntry(Base):
    __tablename__ = "wallet_ledger"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    wallet_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("user_wallets.id"), index=True, nullable=False
    )
    user_id: Mapped[str] = mapped_column(sa.String(64), index=True, nullable=False)
    currency: Mapped[str] = mapped_column(sa.String(8), nullable=False)

    available_delta: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    pending_delta: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    entry_type: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    source_type: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)

    idempotency_key: Mapped[str | None] = mapped_column(sa.String(255), unique=True, nullable=True)
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
