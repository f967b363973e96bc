import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from payments_api.models.base import Base
from payments_api.models.enums import SubmissionStatus

class Opportunity(Base):
    __tablename__ = "opportunities"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(sa.String(300), nullable=False)

class WorkSubmission(Base):
    __tablename__ = "work_submissions"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    status: Mapped[str] = mapped_column(
        sa.String(32), nullable=False, default=SubmissionStatus.submitted.value
    )
