import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from payments_api.models.base import Base
from payments_api.models.enums import PayoutMode

class Profile(Base):
    """Payout profile of a marketplace user (id issued by the identity provider)."""

    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)

    payout_mode: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=PayoutMode.auto.value)
    payment_provider: Mapped[str | None] = mapped_column(sa.String(16), nullable=True)
    payment_provider_id: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    payment_account: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
