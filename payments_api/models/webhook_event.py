import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from payments_api.models.base import Base, JSONType

class WebhookEvent(Base):
    """Audit row for every accepted provider event; insert-only."""

    __tablename__ = "webhook_events"
    __table_args__ = (
        sa.UniqueConstraint("provider", "event_id", name="uq_webhook_events_provider_event_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    provider: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    event_id: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    event_name: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    object_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)

    payload: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    received_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )
