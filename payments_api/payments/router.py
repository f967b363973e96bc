from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.orm import Session

from payments_api.payments.checkout import handle_checkout_completed
from payments_api.payments.payout_events import handle_payout_completed, handle_payout_failed
from payments_api.schemas.webhooks import MonimeEnvelope

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    checkout_completed = "checkout_session.completed"
    payout_completed = "payout.completed"
    payout_failed = "payout.failed"
    payout_delayed = "payout.delayed"
    unknown = "unknown"

    @classmethod
    def parse(cls, name: str | None) -> "EventKind":
        try:
            return cls(name)
        except ValueError:
            return cls.unknown


def dispatch_event(db: Session, payouts, envelope: MonimeEnvelope) -> EventKind:
    kind = EventKind.parse(envelope.event.name)

    if kind is EventKind.checkout_completed:
        handle_checkout_completed(db, payouts, envelope)
    elif kind is EventKind.payout_completed:
        handle_payout_completed(db, envelope)
    elif kind is EventKind.payout_failed:
        handle_payout_failed(db, envelope)
    elif kind is EventKind.payout_delayed:
        logger.warning("monime_payout_delayed", extra={"extra": {"payout_id": envelope.object.id}})
    else:
        # unknown names are accepted so new provider events never cause retries
        logger.info("monime_event_unhandled", extra={"extra": {"event_name": envelope.event.name}})

    return kind
