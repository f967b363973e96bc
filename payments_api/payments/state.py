import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session


def parse_uuid(raw: Any) -> uuid.UUID | None:
    if raw is None:
        return None
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


def transition(
    db: Session,
    model: type,
    record_id: uuid.UUID,
    values: dict[str, Any],
    *,
    from_statuses: Iterable[str] | None = None,
    not_from: Iterable[str] | None = None,
    column: str = "status",
) -> bool:
    """Conditional UPDATE on ``model.<column>`` (``status`` by default); True if the row changed.

    Two deliveries racing on the same record both issue the update, only one
    of them matches the status predicate.
    """
    guarded = getattr(model, column)
    stmt = update(model).where(model.id == record_id)
    if from_statuses is not None:
        stmt = stmt.where(guarded.in_([getattr(s, "value", s) for s in from_statuses]))
    if not_from is not None:
        stmt = stmt.where(guarded.not_in([getattr(s, "value", s) for s in not_from]))

    res = db.execute(stmt.values(**values).execution_options(synchronize_session=False))
    return res.rowcount == 1
