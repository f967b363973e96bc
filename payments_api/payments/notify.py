import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from payments_api.models.notification import Notification

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    *,
    user_id: str,
    type: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> bool:
    """Insert a notification row. Best-effort: returns False instead of raising.

    Runs in a savepoint so a failed insert leaves the caller's unit of work intact.
    """
    try:
        with db.begin_nested():
            db.add(Notification(user_id=user_id, type=type, title=title, message=message, data=data or {}))
        return True
    except SQLAlchemyError as e:
        logger.warning(
            "notification_insert_failed",
            extra={"extra": {"user_id": user_id, "type": type, "error": f"{e.__class__.__name__}: {e}"}},
        )
        return False
